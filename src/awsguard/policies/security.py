"""Certificate, key and IAM credential policies.

Some of these policies look up live account state through the AWS API.
The ``client_factory`` passed to :func:`register_policies` creates the
boto3 clients; blocking boto3 calls run in a worker thread so the
callbacks stay awaitable.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import boto3

from ..policy.models import (
    ConfigField,
    PolicyDescriptor,
    validate_resource_of_type,
    validate_stack_resources_of_type,
)
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]

SECONDS_IN_DAY = 24 * 60 * 60


def _days_between(start: datetime, end: datetime) -> int:
    return math.floor((end - start).total_seconds() / SECONDS_IN_DAY)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def acm_certificate_expiration(client_factory: ClientFactory) -> PolicyDescriptor:
    async def check(certificates, args, report_violation):
        max_days = args.get_config()["max_days_until_expiration"]
        acm = client_factory("acm")
        for certificate in certificates:
            arn = certificate.props.get("arn") or certificate.props.get("id")
            if not arn:
                logger.debug(f"Skipping unprovisioned certificate {certificate.urn}")
                continue
            response = await asyncio.to_thread(acm.describe_certificate, CertificateArn=arn)
            not_after = (response.get("Certificate") or {}).get("NotAfter")
            if not_after is None:
                continue
            days_until_expiry = _days_between(_now(), not_after)
            if days_until_expiry < max_days:
                report_violation(
                    f"certificate expires in {days_until_expiry} (max allowed {max_days} days)",
                    certificate.urn,
                )

    return PolicyDescriptor(
        id="acm_certificate_expiration",
        name="acm-certificate-expiration",
        description=(
            "Checks whether an ACM certificate has expired. Certificates provided by ACM are "
            "automatically renewed. ACM does not automatically renew certificates that you import."
        ),
        config_schema=(
            ConfigField("max_days_until_expiration", "number", default=14,
                        description="Max days before certificate expires."),
        ),
        validate_stack=validate_stack_resources_of_type(ResourceType.ACM_CERTIFICATE, check),
    )


async def _check_key_rotation(key, args, report_violation):
    if not key.get("enableKeyRotation"):
        report_violation("CMK does not have the key rotation setting enabled")


cmk_backing_key_rotation_enabled = PolicyDescriptor(
    id="cmk_backing_key_rotation_enabled",
    name="cmk-backing-key-rotation-enabled",
    description=(
        "Checks that key rotation is enabled for each customer master key (CMK). Checks that "
        "key rotation is enabled for specific key object. Does not apply to CMKs that have "
        "imported key material."
    ),
    validate_resource=validate_resource_of_type(ResourceType.KMS_KEY, _check_key_rotation),
)


def iam_access_keys_rotated(client_factory: ClientFactory) -> PolicyDescriptor:
    async def check(access_keys, args, report_violation):
        max_key_age = args.get_config()["max_key_age"]
        iam = client_factory("iam")
        for access_key in access_keys:
            key_id = access_key.props.get("id")
            # Keys that are not provisioned yet or are inactive cannot be stale
            if not key_id or access_key.props.get("status") != "Active":
                continue

            request = {"UserName": access_key.props.get("user")}
            while True:
                response = await asyncio.to_thread(iam.list_access_keys, **request)
                for metadata in response.get("AccessKeyMetadata", []):
                    created = metadata.get("CreateDate")
                    if metadata.get("AccessKeyId") != key_id or created is None:
                        continue
                    days_since_created = _days_between(created, _now())
                    if days_since_created > max_key_age:
                        report_violation(
                            f"access key must be rotated within {max_key_age} days "
                            f"(key is {days_since_created} days old)",
                            access_key.urn,
                        )
                if not response.get("IsTruncated"):
                    break
                request["Marker"] = response.get("Marker")

    return PolicyDescriptor(
        id="iam_access_keys_rotated",
        name="access-keys-rotated",
        description="Checks whether an access key have been rotated within max_key_age days.",
        config_schema=(
            ConfigField("max_key_age", "integer", default=90, minimum=1, maximum=2 * 365,
                        description="Max key age in days."),
        ),
        validate_stack=validate_stack_resources_of_type(ResourceType.IAM_ACCESS_KEY, check),
    )


def iam_mfa_enabled_for_console_access(client_factory: ClientFactory) -> PolicyDescriptor:
    async def check(login_profile, args, report_violation):
        user = login_profile.get("user")
        iam = client_factory("iam")
        # One device is enough, so there is no need to page through the rest
        response = await asyncio.to_thread(iam.list_mfa_devices, UserName=user)
        if not response.get("MFADevices"):
            report_violation(f"no MFA device enabled for IAM User '{user}'")

    return PolicyDescriptor(
        id="iam_mfa_enabled_for_console_access",
        name="mfa-enabled-for-iam-console-access",
        description=(
            "Checks whether multi-factor Authentication (MFA) is enabled for an IAM user "
            "that use a console password."
        ),
        validate_resource=validate_resource_of_type(ResourceType.IAM_USER_LOGIN_PROFILE, check),
    )


def register_policies(registry: PolicyRegistry, client_factory: ClientFactory | None = None) -> None:
    """Register the security policies.

    Args:
        registry: Registry to populate
        client_factory: Creates AWS API clients by service name
            (default: ``boto3.client``)
    """
    client_factory = client_factory or boto3.client
    registry.add(acm_certificate_expiration(client_factory))
    registry.add(cmk_backing_key_rotation_enabled)
    registry.add(iam_access_keys_rotated(client_factory))
    registry.add(iam_mfa_enabled_for_console_access(client_factory))
