"""API Gateway policies."""

from ..policy.models import ConfigField, PolicyDescriptor, validate_resource_of_type
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType

ENDPOINT_TYPES = ("EDGE", "REGIONAL", "PRIVATE")


def _check_stage_cached(stage, args, report_violation):
    if not stage.get("cacheClusterEnabled"):
        report_violation(f"API Gateway Stage '{stage.get('stageName')}' must have a cache cluster enabled.")


api_gateway_stage_cached = PolicyDescriptor(
    id="api_gateway_stage_cached",
    name="apigateway-stage-cached",
    description="Checks that API Gateway Stages have a cache cluster enabled.",
    validate_resource=validate_resource_of_type(ResourceType.API_GATEWAY_STAGE, _check_stage_cached),
)


def _check_method_cached_and_encrypted(method_settings, args, report_violation):
    settings = method_settings.get("settings") or {}
    method_path = method_settings.get("methodPath")
    if not settings.get("cachingEnabled"):
        report_violation(f"API Gateway Method '{method_path}' must have caching enabled.")
    if not settings.get("cacheDataEncrypted"):
        report_violation(f"API Gateway Method '{method_path}' must encrypt cached responses.")


api_gateway_method_cached_and_encrypted = PolicyDescriptor(
    id="api_gateway_method_cached_and_encrypted",
    name="apigateway-method-cached-and-encrypted",
    description=(
        "Checks API Gateway Methods that responses are configured to be cached "
        "and that those cached responses are encrypted."
    ),
    validate_resource=validate_resource_of_type(
        ResourceType.API_GATEWAY_METHOD_SETTINGS, _check_method_cached_and_encrypted
    ),
)


def _check_endpoint_type(rest_api, args, report_violation):
    config = args.get_config()
    allowed = {
        "EDGE": config["allow_edge"],
        "REGIONAL": config["allow_regional"],
        "PRIVATE": config["allow_private"],
    }
    supported = [endpoint for endpoint in ENDPOINT_TYPES if allowed[endpoint]]

    endpoint_type = "(endpointConfiguration.types unspecified)"
    endpoint_configuration = rest_api.get("endpointConfiguration")
    if endpoint_configuration:
        endpoint_type = endpoint_configuration.get("types")
        if isinstance(endpoint_type, (list, tuple)) and len(endpoint_type) == 1:
            endpoint_type = endpoint_type[0]

    # Unknown endpoint types are never allowed
    if not (isinstance(endpoint_type, str) and endpoint_type in allowed and allowed[endpoint_type]):
        report_violation(
            f"API Gateway '{rest_api.get('name')}' must use a supported endpoint type "
            f"[{','.join(supported)}]. '{endpoint_type}' is unsupported."
        )


api_gateway_endpoint_type = PolicyDescriptor(
    id="api_gateway_endpoint_type",
    name="apigateway-endpoint-type",
    description=(
        "Checks API Gateway endpoint configuration is one of the allowed types. "
        "(By default, only 'EDGE' is allowed.)"
    ),
    config_schema=(
        ConfigField("allow_edge", "boolean", default=True,
                    description="Whether or not API Endpoint type EDGE is allowed."),
        ConfigField("allow_regional", "boolean", default=False,
                    description="Whether or not API Endpoint type REGIONAL is allowed."),
        ConfigField("allow_private", "boolean", default=False,
                    description="Whether or not API Endpoint type PRIVATE is allowed."),
    ),
    validate_resource=validate_resource_of_type(ResourceType.API_GATEWAY_REST_API, _check_endpoint_type),
)

POLICIES = (
    api_gateway_stage_cached,
    api_gateway_method_cached_and_encrypted,
    api_gateway_endpoint_type,
)


def register_policies(registry: PolicyRegistry) -> None:
    for descriptor in POLICIES:
        registry.add(descriptor)
