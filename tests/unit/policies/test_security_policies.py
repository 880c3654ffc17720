"""Tests for certificate, key and IAM credential policies."""

from datetime import datetime, timedelta, timezone

import pytest

from awsguard.errors import ConfigurationError
from awsguard.policies import build_registry, security
from awsguard.policies.security import (
    acm_certificate_expiration,
    cmk_backing_key_rotation_enabled,
    iam_access_keys_rotated,
    iam_mfa_enabled_for_console_access,
)
from awsguard.policy.resolver import resolve
from awsguard.resources import ResourceType

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class FakeClient:
    """Stands in for a boto3 client; returns canned responses per operation."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def __getattr__(self, operation):
        def call(**kwargs):
            self.calls.append((operation, kwargs))
            response = self.responses[operation]
            return response(**kwargs) if callable(response) else response
        return call


class FakeClientFactory:
    def __init__(self, **clients):
        self.clients = clients
        self.requested = []

    def __call__(self, service):
        self.requested.append(service)
        return self.clients[service]


@pytest.fixture(autouse=True)
def frozen_now(monkeypatch):
    monkeypatch.setattr(security, "_now", lambda: NOW)


def certificate(arn, urn="urn:cert"):
    return {"type": ResourceType.ACM_CERTIFICATE.value, "urn": urn, "name": "cert", "props": {"arn": arn}}


def access_key(key_id, status="Active", urn="urn:key"):
    return {
        "type": ResourceType.IAM_ACCESS_KEY.value,
        "urn": urn,
        "name": "key",
        "props": {"id": key_id, "user": "deploy", "status": status},
    }


class TestCertificateExpiration:
    """Test the ACM expiry lookup."""

    def test_expiring_certificate(self, check_stack):
        acm = FakeClient({"describe_certificate": {"Certificate": {"NotAfter": NOW + timedelta(days=3)}}})
        policy = acm_certificate_expiration(FakeClientFactory(acm=acm))

        violations = check_stack(policy, [certificate("arn:cert:1")])

        assert [(v.message, v.urn) for v in violations] == [
            ("certificate expires in 3 (max allowed 14 days)", "urn:cert")
        ]
        assert acm.calls == [("describe_certificate", {"CertificateArn": "arn:cert:1"})]

    def test_certificate_with_enough_time(self, check_stack):
        acm = FakeClient({"describe_certificate": {"Certificate": {"NotAfter": NOW + timedelta(days=60)}}})
        policy = acm_certificate_expiration(FakeClientFactory(acm=acm))

        assert check_stack(policy, [certificate("arn:cert:1")]) == []
        assert check_stack(policy, [certificate("arn:cert:1")], {"max_days_until_expiration": 90.5}) != []

    def test_unprovisioned_certificate_is_skipped(self, check_stack):
        acm = FakeClient({})
        policy = acm_certificate_expiration(FakeClientFactory(acm=acm))

        assert check_stack(policy, [certificate(None)]) == []
        assert acm.calls == []

    def test_other_resources_are_not_selected(self, check_stack):
        acm = FakeClient({})
        policy = acm_certificate_expiration(FakeClientFactory(acm=acm))
        records = [{"type": ResourceType.S3_BUCKET.value, "urn": "urn:bucket", "props": {"arn": "arn:bucket"}}]

        assert check_stack(policy, records) == []
        assert acm.calls == []

    def test_api_errors_propagate(self, check_stack):
        def fail(**kwargs):
            raise RuntimeError("throttled")

        policy = acm_certificate_expiration(FakeClientFactory(acm=FakeClient({"describe_certificate": fail})))
        with pytest.raises(RuntimeError, match="throttled"):
            check_stack(policy, [certificate("arn:cert:1")])


class TestKeyRotation:
    """Test the KMS rotation check."""

    def test_rotation(self, check_resource):
        assert check_resource(cmk_backing_key_rotation_enabled, ResourceType.KMS_KEY, {}) == [
            "CMK does not have the key rotation setting enabled"
        ]
        assert check_resource(cmk_backing_key_rotation_enabled, ResourceType.KMS_KEY,
                              {"enableKeyRotation": True}) == []


class TestAccessKeysRotated:
    """Test access key age against the IAM API."""

    def test_stale_key_across_pages(self, check_stack):
        pages = {
            None: {
                "AccessKeyMetadata": [{"AccessKeyId": "AKIA1", "CreateDate": NOW - timedelta(days=10)}],
                "IsTruncated": True,
                "Marker": "page-2",
            },
            "page-2": {
                "AccessKeyMetadata": [{"AccessKeyId": "AKIA2", "CreateDate": NOW - timedelta(days=120)}],
                "IsTruncated": False,
            },
        }
        iam = FakeClient({"list_access_keys": lambda **kwargs: pages[kwargs.get("Marker")]})
        policy = iam_access_keys_rotated(FakeClientFactory(iam=iam))

        violations = check_stack(policy, [access_key("AKIA2")])

        assert len(violations) == 1
        assert violations[0].urn == "urn:key"
        assert "within 90 days" in violations[0].message
        assert [call[1] for call in iam.calls] == [
            {"UserName": "deploy"},
            {"UserName": "deploy", "Marker": "page-2"},
        ]

    def test_custom_max_age(self, check_stack):
        iam = FakeClient({"list_access_keys": {
            "AccessKeyMetadata": [{"AccessKeyId": "AKIA1", "CreateDate": NOW - timedelta(days=10)}],
        }})
        policy = iam_access_keys_rotated(FakeClientFactory(iam=iam))

        assert check_stack(policy, [access_key("AKIA1")]) == []
        assert len(check_stack(policy, [access_key("AKIA1")], {"max_key_age": 5})) == 1

    def test_inactive_and_unprovisioned_keys_are_skipped(self, check_stack):
        iam = FakeClient({})
        policy = iam_access_keys_rotated(FakeClientFactory(iam=iam))

        assert check_stack(policy, [access_key("AKIA1", status="Inactive"), access_key(None)]) == []
        assert iam.calls == []

    def test_max_age_range(self, make_policy):
        policy = iam_access_keys_rotated(FakeClientFactory())
        with pytest.raises(ConfigurationError):
            make_policy(policy, {"max_key_age": 731})


class TestMfaEnabled:
    """Test MFA lookup for console users."""

    def test_user_without_mfa(self, check_resource):
        iam = FakeClient({"list_mfa_devices": {"MFADevices": []}})
        policy = iam_mfa_enabled_for_console_access(FakeClientFactory(iam=iam))

        messages = check_resource(policy, ResourceType.IAM_USER_LOGIN_PROFILE, {"user": "alice"})

        assert messages == ["no MFA device enabled for IAM User 'alice'"]
        assert iam.calls == [("list_mfa_devices", {"UserName": "alice"})]

    def test_user_with_mfa(self, check_resource):
        iam = FakeClient({"list_mfa_devices": {"MFADevices": [{"SerialNumber": "arn:mfa"}]}})
        policy = iam_mfa_enabled_for_console_access(FakeClientFactory(iam=iam))

        assert check_resource(policy, ResourceType.IAM_USER_LOGIN_PROFILE, {"user": "alice"}) == []


class TestBuiltinRegistry:
    """Test the assembled registry of built-in policies."""

    def test_every_builtin_policy_is_registered(self):
        registry = build_registry(client_factory=FakeClientFactory())

        assert registry.frozen
        assert len(registry) == 27
        assert registry.sorted_ids()[:2] == ["acm_certificate_expiration", "alb_http_to_https_redirection"]
        assert registry.get("iam_access_keys_rotated").name == "access-keys-rotated"

    def test_every_builtin_policy_defaults_to_advisory(self):
        resolved = resolve(build_registry(client_factory=FakeClientFactory()))
        assert len(resolved) == 27
        assert {policy.enforcement_level.value for policy in resolved} == {"advisory"}

    def test_build_registry_is_repeatable(self):
        first = build_registry(client_factory=FakeClientFactory())
        second = build_registry(client_factory=FakeClientFactory())
        assert first.sorted_ids() == second.sorted_ids()
