"""IAM policies that need the whole stack to evaluate."""

import json

from ..policy.models import PolicyDescriptor, StackValidation
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType

# Resource kinds that manage a role's policies, and the property that names the role.
ROLE_POLICY_MANAGERS = {
    ResourceType.IAM_POLICY_ATTACHMENT.value: ("roles", "PolicyAttachment"),
    ResourceType.IAM_ROLE_POLICY_ATTACHMENT.value: ("role", "RolePolicyAttachment"),
    ResourceType.IAM_ROLE_POLICY.value: ("role", "RolePolicy"),
}


def _check_policy_management_conflicts(resources, args, report_violation):
    """Roles that manage their own policies must not also be targeted by attachments.

    An iam.Role using managedPolicyArns or inlinePolicies takes exclusive
    control of those policy types, so any PolicyAttachment,
    RolePolicyAttachment or RolePolicy aimed at it causes resource cycling.
    """
    for resource in args.resources_of_type(*ROLE_POLICY_MANAGERS):
        role_prop, current_type = ROLE_POLICY_MANAGERS[resource.type]

        for dependency in resource.property_dependencies.get(role_prop, []):
            if not dependency.is_type(ResourceType.IAM_ROLE) or not dependency.props:
                continue
            if dependency.props.get("managedPolicyArns"):
                report_violation(
                    f"{current_type} should not be used with a role {dependency.urn} "
                    f"that defines managedPolicyArns",
                    resource.urn,
                )
            inline_policies = dependency.props.get("inlinePolicies")
            if inline_policies:
                report_violation(
                    f"{current_type} should not be used with a role {dependency.urn} "
                    f"that defines inlinePolicies {json.dumps(inline_policies)}",
                    resource.urn,
                )


iam_role_no_policy_management_conflicts = PolicyDescriptor(
    id="iam_role_no_policy_management_conflicts",
    name="iam-role-no-policy-management-conflicts",
    description=(
        "Checks that iam.Role resources do not conflict with iam.PolicyAttachment, "
        "iam.RolePolicyAttachment, iam.RolePolicy"
    ),
    validate_stack=StackValidation(callback=_check_policy_management_conflicts),
)


def register_policies(registry: PolicyRegistry) -> None:
    registry.add(iam_role_no_policy_management_conflicts)
