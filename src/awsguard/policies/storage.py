"""EFS, load balancer protection and S3 policies."""

from ..policy.models import PolicyDescriptor, validate_resource_of_type
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType


def _check_efs_encrypted(file_system, args, report_violation):
    if not file_system.get("kmsKeyId"):
        report_violation("Amazon Elastic File System must have a KMS Key defined.")


efs_encrypted_check = PolicyDescriptor(
    id="efs_encrypted_check",
    name="efs-encrypted-check",
    description=(
        "Checks whether Amazon Elastic File System (Amazon EFS) is configured to encrypt "
        "the file data using AWS Key Management Service (AWS KMS)."
    ),
    validate_resource=validate_resource_of_type(ResourceType.EFS_FILE_SYSTEM, _check_efs_encrypted),
)


def _check_deletion_protection(load_balancer, args, report_violation):
    if not load_balancer.get("enableDeletionProtection"):
        report_violation("Deletion Protection must be enabled.")


elb_deletion_protection_enabled = PolicyDescriptor(
    id="elb_deletion_protection_enabled",
    name="elb-deletion-protection-enabled",
    description="Checks whether Elastic Load Balancing has deletion protection enabled.",
    validate_resource=[
        validate_resource_of_type(ResourceType.APPLICATION_LOAD_BALANCER, _check_deletion_protection),
        validate_resource_of_type(ResourceType.ELBV2_LOAD_BALANCER, _check_deletion_protection),
    ],
)


def _check_bucket_logging(bucket, args, report_violation):
    # AWS ensures the target bucket exists and is writable
    if not bucket.get("loggings"):
        report_violation("Bucket logging must be defined.")


s3_bucket_logging_enabled = PolicyDescriptor(
    id="s3_bucket_logging_enabled",
    name="s3-bucket-logging-enabled",
    description="Checks whether logging is enabled for your S3 buckets.",
    validate_resource=validate_resource_of_type(ResourceType.S3_BUCKET, _check_bucket_logging),
)

POLICIES = (
    efs_encrypted_check,
    elb_deletion_protection_enabled,
    s3_bucket_logging_enabled,
)


def register_policies(registry: PolicyRegistry) -> None:
    for descriptor in POLICIES:
        registry.add(descriptor)
