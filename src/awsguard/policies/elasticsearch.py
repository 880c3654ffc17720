"""Elasticsearch domain policies."""

from ..policy.models import PolicyDescriptor, validate_resource_of_type
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType


def _check_encrypted_at_rest(domain, args, report_violation):
    encrypt_at_rest = domain.get("encryptAtRest")
    if not encrypt_at_rest or encrypt_at_rest.get("enabled") is False:
        report_violation(f"Elasticsearch domain {domain.get('domainName')} must be encrypted at rest.")


elasticsearch_encrypted_at_rest = PolicyDescriptor(
    id="elasticsearch_encrypted_at_rest",
    name="elasticsearch-encrypted-at-rest",
    description="Checks if the Elasticsearch Service domains have encryption at rest enabled.",
    validate_resource=validate_resource_of_type(ResourceType.ELASTICSEARCH_DOMAIN, _check_encrypted_at_rest),
)


def _check_in_vpc_only(domain, args, report_violation):
    # Only checks that some VPC is attached, not whether that VPC is internet facing
    if domain.get("vpcOptions") is None:
        report_violation(f"Elasticsearch domain {domain.get('domainName')} must run within a VPC.")


elasticsearch_in_vpc_only = PolicyDescriptor(
    id="elasticsearch_in_vpc_only",
    name="elasticsearch-in-vpc-only",
    description=(
        "Checks that the Elasticsearch domain is only available within a VPC, "
        "and not accessible via a public endpoint."
    ),
    validate_resource=validate_resource_of_type(ResourceType.ELASTICSEARCH_DOMAIN, _check_in_vpc_only),
)


def register_policies(registry: PolicyRegistry) -> None:
    registry.add(elasticsearch_encrypted_at_rest)
    registry.add(elasticsearch_in_vpc_only)
