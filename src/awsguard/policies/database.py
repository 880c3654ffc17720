"""Redshift, DynamoDB and RDS policies."""

from ..policy.models import ConfigField, PolicyDescriptor, validate_resource_of_type
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType


def _check_redshift_configuration(cluster, args, report_violation):
    config = args.get_config()
    cluster_db_encrypted = config["cluster_db_encrypted"]
    logging_enabled = config["logging_enabled"]
    node_types = config["node_types"]

    encrypted = cluster.get("encrypted")
    if cluster_db_encrypted and not encrypted:
        report_violation("Redshift cluster must be encrypted.")
    elif not cluster_db_encrypted and encrypted is True:
        report_violation("Redshift cluster must not be encrypted.")

    if node_types and cluster.get("nodeType") not in node_types:
        report_violation(
            f"Redshift cluster node type must be one of the following: {','.join(node_types)}"
        )

    audit_logging = cluster.get("logging") or {}
    if logging_enabled and not audit_logging.get("enable"):
        report_violation("Redshift cluster must have logging enabled.")
    elif not logging_enabled and audit_logging.get("enable") is True:
        report_violation("Redshift cluster must not have logging enabled.")


redshift_cluster_configuration = PolicyDescriptor(
    id="redshift_cluster_configuration",
    name="redshift-cluster-configuration",
    description="Checks whether Amazon Redshift clusters have the specified settings.",
    config_schema=(
        ConfigField("cluster_db_encrypted", "boolean", default=True,
                    description="If true, database encryption is enabled."),
        ConfigField("logging_enabled", "boolean", default=True,
                    description="If true, audit logging must be enabled."),
        ConfigField("node_types", "array", description="List of allowed node types."),
    ),
    validate_resource=validate_resource_of_type(ResourceType.REDSHIFT_CLUSTER, _check_redshift_configuration),
)


def _check_redshift_maintenance(cluster, args, report_violation):
    config = args.get_config()
    allow_version_upgrade = config["allow_version_upgrade"]
    window = config["preferred_maintenance_window"]
    retention = config["automated_snapshot_retention_period"]

    cluster_upgrade = cluster.get("allowVersionUpgrade")
    if allow_version_upgrade and cluster_upgrade is False:
        report_violation("Redshift cluster must allow version upgrades.")
    elif not allow_version_upgrade and (cluster_upgrade is None or cluster_upgrade):
        report_violation("Redshift cluster must not allow version upgrades.")

    if window and cluster.get("preferredMaintenanceWindow") != window:
        report_violation(f"Redshift cluster must specify the preferred maintenance window: {window}.")

    # Redshift keeps automated snapshots for 1 day unless told otherwise
    if retention:
        actual = cluster.get("automatedSnapshotRetentionPeriod", 1)
        if actual != retention:
            report_violation(
                f"Redshift cluster must specify an automated snapshot retention period of {retention}."
            )


redshift_cluster_maintenance_settings = PolicyDescriptor(
    id="redshift_cluster_maintenance_settings",
    name="redshift-cluster-maintenance-settings",
    description="Checks whether Amazon Redshift clusters have the specified maintenance settings.",
    config_schema=(
        ConfigField("allow_version_upgrade", "boolean", default=True),
        ConfigField("preferred_maintenance_window", "string",
                    description="Scheduled maintenance window, for example Mon:09:30-Mon:10:00."),
        ConfigField("automated_snapshot_retention_period", "integer",
                    description="Number of days to retain automated snapshots."),
    ),
    validate_resource=validate_resource_of_type(ResourceType.REDSHIFT_CLUSTER, _check_redshift_maintenance),
)


def _check_redshift_public_access(cluster, args, report_violation):
    if cluster.get("publiclyAccessible") is None or cluster.get("publiclyAccessible"):
        report_violation("Redshift cluster must not be publicly accessible.")


redshift_cluster_public_access = PolicyDescriptor(
    id="redshift_cluster_public_access",
    name="redshift-cluster-public-access",
    description="Checks whether Amazon Redshift clusters are not publicly accessible.",
    validate_resource=validate_resource_of_type(ResourceType.REDSHIFT_CLUSTER, _check_redshift_public_access),
)


def _check_dynamodb_encryption(table, args, report_violation):
    sse = table.get("serverSideEncryption")
    if sse and not sse.get("enabled"):
        report_violation("DynamoDB must have server side encryption enabled.")


dynamodb_table_encryption_enabled = PolicyDescriptor(
    id="dynamodb_table_encryption_enabled",
    name="dynamodb-table-encryption-enabled",
    description="Checks whether the Amazon DynamoDB tables are encrypted.",
    validate_resource=validate_resource_of_type(ResourceType.DYNAMODB_TABLE, _check_dynamodb_encryption),
)


def _check_rds_backup(instance, args, report_violation):
    config = args.get_config()
    retention = config["backup_retention_period"]
    window = config["preferred_backup_window"]

    if instance.get("replicateSourceDb") and not config["check_read_replicas"]:
        return

    if instance.get("backupRetentionPeriod") == 0:
        report_violation("RDS Instances must have backups enabled.")

    # RDS keeps backups for 7 days unless told otherwise
    if retention:
        actual = instance.get("backupRetentionPeriod") or 7
        if actual != retention:
            report_violation(f"RDS Instances must have a backup retention period of: {retention}.")

    if window and instance.get("backupWindow") != window:
        report_violation(f"RDS Instances must have a backup preferred back up window of: {window}.")


rds_instance_backup_enabled = PolicyDescriptor(
    id="rds_instance_backup_enabled",
    name="rds-instance-backup-enabled",
    description=(
        "Checks whether RDS DB instances have backups enabled. "
        "Optionally, the rule checks the backup retention period and the backup window."
    ),
    config_schema=(
        ConfigField("backup_retention_period", "integer", exclusive_minimum=0,
                    description="Retention period for backups. Must be greater than 0."),
        ConfigField("preferred_backup_window", "string",
                    description="Time range in which backups are created."),
        ConfigField("check_read_replicas", "boolean", default=True,
                    description="Whether read replicas are checked as well."),
    ),
    validate_resource=validate_resource_of_type(ResourceType.RDS_INSTANCE, _check_rds_backup),
)


def _check_rds_public_access(instance, args, report_violation):
    if instance.get("publiclyAccessible"):
        report_violation("RDS Instance must not be publicly accessible.")


rds_instance_public_access = PolicyDescriptor(
    id="rds_instance_public_access",
    name="rds-instance-public-access",
    description="Check whether the Amazon Relational Database Service instances are not publicly accessible.",
    validate_resource=validate_resource_of_type(ResourceType.RDS_INSTANCE, _check_rds_public_access),
)


def _check_rds_storage_encrypted(instance, args, report_violation):
    kms_key_id = args.get_config()["kms_key_id"]

    # Read replicas inherit encryption from their source and ignore storageEncrypted
    if not instance.get("replicateSourceDb") and not instance.get("storageEncrypted"):
        report_violation("RDS Instance must have storage encryption enabled.")
    if kms_key_id and instance.get("kmsKeyId") != kms_key_id:
        report_violation(f"RDS Instance must be encrypted with kms key id: {kms_key_id}.")


rds_storage_encrypted = PolicyDescriptor(
    id="rds_storage_encrypted",
    name="rds-storage-encrypted",
    description="Checks whether storage encryption is enabled for your RDS DB instances.",
    config_schema=(
        ConfigField("kms_key_id", "string", description="KMS key ID or ARN used to encrypt the storage."),
    ),
    validate_resource=validate_resource_of_type(ResourceType.RDS_INSTANCE, _check_rds_storage_encrypted),
)

POLICIES = (
    redshift_cluster_configuration,
    redshift_cluster_maintenance_settings,
    redshift_cluster_public_access,
    dynamodb_table_encryption_enabled,
    rds_instance_backup_enabled,
    rds_instance_public_access,
    rds_storage_encrypted,
)


def register_policies(registry: PolicyRegistry) -> None:
    for descriptor in POLICIES:
        registry.add(descriptor)
