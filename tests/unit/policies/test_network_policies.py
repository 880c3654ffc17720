"""Tests for listener, API Gateway, storage and Elasticsearch policies."""

import pytest

from awsguard.policies.api_gateway import (
    api_gateway_endpoint_type,
    api_gateway_method_cached_and_encrypted,
    api_gateway_stage_cached,
)
from awsguard.policies.elasticsearch import elasticsearch_encrypted_at_rest, elasticsearch_in_vpc_only
from awsguard.policies.network import LISTENER_TYPES, alb_http_to_https_redirection
from awsguard.policies.storage import (
    efs_encrypted_check,
    elb_deletion_protection_enabled,
    s3_bucket_logging_enabled,
)
from awsguard.resources import ResourceType

HTTPS_REDIRECT = {"type": "redirect", "redirect": {"protocol": "HTTPS", "port": "443"}}


class TestHttpsRedirection:
    """Test HTTP listener redirection."""

    @pytest.mark.parametrize("resource_type", LISTENER_TYPES)
    def test_redirect_is_compliant(self, check_resource, resource_type):
        props = {"protocol": "HTTP", "defaultActions": [HTTPS_REDIRECT]}
        assert check_resource(alb_http_to_https_redirection, resource_type, props) == []

    def test_https_listener_is_ignored(self, check_resource):
        assert check_resource(alb_http_to_https_redirection, ResourceType.LB_LISTENER, {"protocol": "HTTPS"}) == []

    def test_no_default_actions(self, check_resource):
        assert check_resource(alb_http_to_https_redirection, ResourceType.LB_LISTENER, {"protocol": "HTTP"}) == [
            "HTTP listener has no default actions configured."
        ]

    def test_several_default_actions(self, check_resource):
        props = {"protocol": "HTTP", "defaultActions": [HTTPS_REDIRECT, HTTPS_REDIRECT]}
        assert check_resource(alb_http_to_https_redirection, ResourceType.LB_LISTENER, props) == [
            "HTTP listener has more than one default action."
        ]

    def test_forward_action(self, check_resource):
        props = {"protocol": "HTTP", "defaultActions": [{"type": "forward"}]}
        assert check_resource(alb_http_to_https_redirection, ResourceType.ALB_LISTENER, props) == [
            "Default action for HTTP listener must be a redirect using HTTPS."
        ]


class TestApiGateway:
    """Test API Gateway caching and endpoint types."""

    def test_stage_cached(self, check_resource):
        stage = ResourceType.API_GATEWAY_STAGE
        assert check_resource(api_gateway_stage_cached, stage, {"cacheClusterEnabled": True}) == []
        assert check_resource(api_gateway_stage_cached, stage, {"stageName": "prod"}) == [
            "API Gateway Stage 'prod' must have a cache cluster enabled."
        ]

    def test_method_cached_and_encrypted(self, check_resource):
        settings = ResourceType.API_GATEWAY_METHOD_SETTINGS
        props = {"methodPath": "*/*", "settings": {"cachingEnabled": True}}
        assert check_resource(api_gateway_method_cached_and_encrypted, settings, props) == [
            "API Gateway Method '*/*' must encrypt cached responses."
        ]

    def test_edge_allowed_by_default(self, check_resource):
        rest_api = ResourceType.API_GATEWAY_REST_API
        assert check_resource(api_gateway_endpoint_type, rest_api, {"endpointConfiguration": {"types": "EDGE"}}) == []

    def test_unspecified_endpoint_type(self, check_resource):
        messages = check_resource(api_gateway_endpoint_type, ResourceType.API_GATEWAY_REST_API, {"name": "api"})
        assert messages == [
            "API Gateway 'api' must use a supported endpoint type [EDGE]. "
            "'(endpointConfiguration.types unspecified)' is unsupported."
        ]

    def test_regional_when_allowed(self, check_resource):
        props = {"name": "api", "endpointConfiguration": {"types": "REGIONAL"}}
        rest_api = ResourceType.API_GATEWAY_REST_API
        assert len(check_resource(api_gateway_endpoint_type, rest_api, props)) == 1
        assert check_resource(api_gateway_endpoint_type, rest_api, props, {"allow_regional": True}) == []

    def test_allow_list_in_message(self, check_resource):
        props = {"name": "api", "endpointConfiguration": {"types": "EDGE"}}
        config = {"allow_edge": False, "allow_regional": True, "allow_private": True}
        assert check_resource(api_gateway_endpoint_type, ResourceType.API_GATEWAY_REST_API, props, config) == [
            "API Gateway 'api' must use a supported endpoint type [REGIONAL,PRIVATE]. 'EDGE' is unsupported."
        ]

    def test_single_element_types_list(self, check_resource):
        props = {"name": "api", "endpointConfiguration": {"types": ["REGIONAL"]}}
        rest_api = ResourceType.API_GATEWAY_REST_API
        assert check_resource(api_gateway_endpoint_type, rest_api, props) == [
            "API Gateway 'api' must use a supported endpoint type [EDGE]. 'REGIONAL' is unsupported."
        ]
        assert check_resource(api_gateway_endpoint_type, rest_api, props, {"allow_regional": True}) == []

    def test_multiple_types_are_unsupported(self, check_resource):
        props = {"name": "api", "endpointConfiguration": {"types": ["EDGE", "PRIVATE"]}}
        config = {"allow_private": True}
        messages = check_resource(api_gateway_endpoint_type, ResourceType.API_GATEWAY_REST_API, props, config)
        assert len(messages) == 1
        assert "is unsupported" in messages[0]


class TestStorage:
    """Test EFS, load balancer deletion protection and S3 logging."""

    def test_efs_encrypted(self, check_resource):
        efs = ResourceType.EFS_FILE_SYSTEM
        assert check_resource(efs_encrypted_check, efs, {"kmsKeyId": "key"}) == []
        assert check_resource(efs_encrypted_check, efs, {"encrypted": True}) == [
            "Amazon Elastic File System must have a KMS Key defined."
        ]

    @pytest.mark.parametrize(
        "resource_type", [ResourceType.APPLICATION_LOAD_BALANCER, ResourceType.ELBV2_LOAD_BALANCER]
    )
    def test_deletion_protection(self, check_resource, resource_type):
        assert check_resource(elb_deletion_protection_enabled, resource_type, {}) == [
            "Deletion Protection must be enabled."
        ]
        assert check_resource(elb_deletion_protection_enabled, resource_type,
                              {"enableDeletionProtection": True}) == []

    def test_bucket_logging(self, check_resource):
        bucket = ResourceType.S3_BUCKET
        assert check_resource(s3_bucket_logging_enabled, bucket, {}) == ["Bucket logging must be defined."]
        assert check_resource(s3_bucket_logging_enabled, bucket, {"loggings": [{"targetBucket": "logs"}]}) == []


class TestElasticsearch:
    """Test Elasticsearch domain policies."""

    def test_encrypted_at_rest(self, check_resource):
        domain = ResourceType.ELASTICSEARCH_DOMAIN
        assert check_resource(elasticsearch_encrypted_at_rest, domain, {"encryptAtRest": {"enabled": True}}) == []
        assert check_resource(elasticsearch_encrypted_at_rest, domain,
                              {"domainName": "search", "encryptAtRest": {"enabled": False}}) == [
            "Elasticsearch domain search must be encrypted at rest."
        ]

    def test_in_vpc_only(self, check_resource):
        domain = ResourceType.ELASTICSEARCH_DOMAIN
        assert check_resource(elasticsearch_in_vpc_only, domain, {"vpcOptions": {"subnetIds": ["s-1"]}}) == []
        assert check_resource(elasticsearch_in_vpc_only, domain, {"domainName": "search"}) == [
            "Elasticsearch domain search must run within a VPC."
        ]
