"""Network policies."""

from ..policy.models import PolicyDescriptor, validate_resource_of_type
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType

LISTENER_TYPES = (
    ResourceType.ELBV2_LISTENER,
    ResourceType.ALB_LISTENER,
    ResourceType.LB_LISTENER,
)


def _check_https_redirection(listener, args, report_violation):
    if listener.get("protocol") != "HTTP":
        return

    default_actions = listener.get("defaultActions") or []
    if not default_actions:
        report_violation("HTTP listener has no default actions configured.")
        return
    if len(default_actions) > 1:
        report_violation("HTTP listener has more than one default action.")
        return

    action = default_actions[0]
    redirect = action.get("redirect") or {}
    if action.get("type") != "redirect" or redirect.get("protocol") != "HTTPS":
        report_violation("Default action for HTTP listener must be a redirect using HTTPS.")


alb_http_to_https_redirection = PolicyDescriptor(
    id="alb_http_to_https_redirection",
    name="alb-http-to-https-redirection",
    description="Checks that the default action for all HTTP listeners is to redirect to HTTPS.",
    validate_resource=validate_resource_of_type(LISTENER_TYPES, _check_https_redirection),
)


def register_policies(registry: PolicyRegistry) -> None:
    registry.add(alb_http_to_https_redirection)
