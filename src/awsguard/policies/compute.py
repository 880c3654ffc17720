"""EC2 and load balancer policies."""

from ..policy.models import ConfigField, PolicyDescriptor, validate_resource_of_type
from ..policy.registry import PolicyRegistry
from ..resources import ResourceType

LOAD_BALANCER_TYPES = (
    ResourceType.ELB_LOAD_BALANCER,
    ResourceType.ELBV2_LOAD_BALANCER,
    ResourceType.APPLICATION_LOAD_BALANCER,
    ResourceType.LB_LOAD_BALANCER,
    ResourceType.ALB_LOAD_BALANCER,
)


def _check_detailed_monitoring(instance, args, report_violation):
    if not instance.get("monitoring"):
        report_violation("EC2 instances must have detailed monitoring enabled.")


ec2_instance_detailed_monitoring_enabled = PolicyDescriptor(
    id="ec2_instance_detailed_monitoring_enabled",
    name="ec2-instance-detailed-monitoring-enabled",
    description="Checks whether detailed monitoring is enabled for EC2 instances.",
    validate_resource=validate_resource_of_type(ResourceType.EC2_INSTANCE, _check_detailed_monitoring),
)


def _check_no_public_ip(instance, args, report_violation):
    if instance.get("associatePublicIpAddress"):
        report_violation("EC2 instance must not have a public IP.")


ec2_instance_no_public_ip = PolicyDescriptor(
    id="ec2_instance_no_public_ip",
    name="ec2-instance-no-public-ip",
    description=(
        "Checks whether Amazon EC2 instances have a public IP association. "
        "This rule applies only to IPv4."
    ),
    validate_resource=validate_resource_of_type(ResourceType.EC2_INSTANCE, _check_no_public_ip),
)


def _check_volume_in_use(instance, args, report_violation):
    check_deletion = args.get_config()["check_deletion"]
    volumes = instance.get("ebsBlockDevices") or []

    if not volumes:
        report_violation("EC2 instance must have an EBS volume attached.")

    if check_deletion:
        for volume in volumes:
            if not volume.get("deleteOnTermination"):
                report_violation(
                    f"EC2 instance's EBS volume ({volume.get('volumeId')}) must be marked for termination on delete."
                )


ec2_volume_in_use = PolicyDescriptor(
    id="ec2_volume_in_use",
    name="ec2-volume-inuse",
    description=(
        "Checks whether EBS volumes are attached to EC2 instances. Optionally checks if EBS "
        "volumes are marked for deletion when an instance is terminated."
    ),
    config_schema=(ConfigField("check_deletion", "boolean", default=True),),
    validate_resource=validate_resource_of_type(ResourceType.EC2_INSTANCE, _check_volume_in_use),
)


def _check_access_logs(load_balancer, args, report_violation):
    access_logs = load_balancer.get("accessLogs")
    if not access_logs or not access_logs.get("enabled"):
        report_violation("Elastic Load Balancer must have access logs enabled.")


# One callback per load balancer kind; each only ever sees its own kind.
elb_access_logging_enabled = PolicyDescriptor(
    id="elb_access_logging_enabled",
    name="elb-logging-enabled",
    description=(
        "Checks whether the Application Load Balancers and the Classic Load Balancers "
        "have logging enabled."
    ),
    validate_resource=[
        validate_resource_of_type(resource_type, _check_access_logs)
        for resource_type in LOAD_BALANCER_TYPES
    ],
)


def _check_encrypted_volumes(instance, args, report_violation):
    kms_id = args.get_config()["kms_id"]

    root_block_device = instance.get("rootBlockDevice")
    if not root_block_device:
        report_violation("The EC2 instance root block device must be encrypted.")
    else:
        if not root_block_device.get("encrypted"):
            report_violation("The EC2 instance root block device must be encrypted.")
        if kms_id and root_block_device.get("kmsKeyId") != kms_id:
            report_violation(
                f"The EC2 instance root block device must be encrypted with required key: {kms_id}."
            )

    for ebs in instance.get("ebsBlockDevices") or []:
        if not ebs.get("encrypted"):
            report_violation(f"EBS volume ({ebs.get('volumeId')}) must be encrypted.")
        if kms_id and ebs.get("kmsKeyId") != kms_id:
            report_violation(
                f"EBS volume ({ebs.get('volumeId')}) must be encrypted with required key: {kms_id}."
            )


encrypted_volumes = PolicyDescriptor(
    id="encrypted_volumes",
    name="encrypted-volumes",
    description=(
        "Checks whether the EBS volumes that are in an attached state are encrypted. "
        "If you specify the ID of a KMS key for encryption using the kms_id parameter, "
        "the rule checks if the EBS volumes in an attached state are encrypted with that KMS key."
    ),
    config_schema=(ConfigField("kms_id", "string"),),
    validate_resource=validate_resource_of_type(ResourceType.EC2_INSTANCE, _check_encrypted_volumes),
)


def _approved_ami_check(kind: str, image_prop: str):
    def check(resource, args, report_violation):
        ami_ids = args.get_config()["ami_ids"]
        image_id = resource.get(image_prop)
        if ami_ids and image_id and image_id not in ami_ids:
            report_violation(f"EC2 {kind} is using Ami:({image_id}), should use approved AMIs.")

    return check


ami_by_ids = PolicyDescriptor(
    id="ami_by_ids",
    name="ami-by-ids",
    description="Checks instances and launch templates to validate users are using approved AMIs.",
    config_schema=(ConfigField("ami_ids", "array", default=[]),),
    validate_resource=[
        validate_resource_of_type(ResourceType.EC2_INSTANCE, _approved_ami_check("Instance", "ami")),
        validate_resource_of_type(
            ResourceType.EC2_LAUNCH_CONFIGURATION, _approved_ami_check("LaunchConfiguration", "imageId")
        ),
        validate_resource_of_type(
            ResourceType.EC2_LAUNCH_TEMPLATE, _approved_ami_check("LaunchTemplate", "imageId")
        ),
    ],
)

POLICIES = (
    ec2_instance_detailed_monitoring_enabled,
    ec2_instance_no_public_ip,
    ec2_volume_in_use,
    elb_access_logging_enabled,
    encrypted_volumes,
    ami_by_ids,
)


def register_policies(registry: PolicyRegistry) -> None:
    for descriptor in POLICIES:
        registry.add(descriptor)
