"""Declared infrastructure resources as seen by awsguard policies.

Resources arrive from the validation host as loosely typed records. This
module parses them into :class:`SubjectRecord` models and then links them
into :class:`PolicyResource` objects whose ``dependencies`` and
``property_dependencies`` point at the other resources of the same stack,
so stack policies can walk declared relationships without the engine
understanding what any resource means.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ResourceType(str, Enum):
    """Type tokens of the resource kinds the built-in policies inspect."""
    ACM_CERTIFICATE = "aws:acm/certificate:Certificate"
    ALB_LISTENER = "aws:alb/listener:Listener"
    ALB_LOAD_BALANCER = "aws:alb/loadBalancer:LoadBalancer"
    API_GATEWAY_METHOD_SETTINGS = "aws:apigateway/methodSettings:MethodSettings"
    API_GATEWAY_REST_API = "aws:apigateway/restApi:RestApi"
    API_GATEWAY_STAGE = "aws:apigateway/stage:Stage"
    APPLICATION_LOAD_BALANCER = "aws:applicationloadbalancing/loadBalancer:LoadBalancer"
    DYNAMODB_TABLE = "aws:dynamodb/table:Table"
    EC2_INSTANCE = "aws:ec2/instance:Instance"
    EC2_LAUNCH_CONFIGURATION = "aws:ec2/launchConfiguration:LaunchConfiguration"
    EC2_LAUNCH_TEMPLATE = "aws:ec2/launchTemplate:LaunchTemplate"
    EFS_FILE_SYSTEM = "aws:efs/fileSystem:FileSystem"
    ELASTICSEARCH_DOMAIN = "aws:elasticsearch/domain:Domain"
    ELB_LOAD_BALANCER = "aws:elasticloadbalancing/loadBalancer:LoadBalancer"
    ELBV2_LISTENER = "aws:elasticloadbalancingv2/listener:Listener"
    ELBV2_LOAD_BALANCER = "aws:elasticloadbalancingv2/loadBalancer:LoadBalancer"
    IAM_ACCESS_KEY = "aws:iam/accessKey:AccessKey"
    IAM_POLICY_ATTACHMENT = "aws:iam/policyAttachment:PolicyAttachment"
    IAM_ROLE = "aws:iam/role:Role"
    IAM_ROLE_POLICY = "aws:iam/rolePolicy:RolePolicy"
    IAM_ROLE_POLICY_ATTACHMENT = "aws:iam/rolePolicyAttachment:RolePolicyAttachment"
    IAM_USER_LOGIN_PROFILE = "aws:iam/userLoginProfile:UserLoginProfile"
    KMS_KEY = "aws:kms/key:Key"
    LB_LISTENER = "aws:lb/listener:Listener"
    LB_LOAD_BALANCER = "aws:lb/loadBalancer:LoadBalancer"
    RDS_INSTANCE = "aws:rds/instance:Instance"
    REDSHIFT_CLUSTER = "aws:redshift/cluster:Cluster"
    S3_BUCKET = "aws:s3/bucket:Bucket"


def type_tag(value: "ResourceType | str") -> str:
    """Return the plain string token for a ResourceType or raw tag."""
    return value.value if isinstance(value, ResourceType) else str(value)


class SubjectRecord(BaseModel):
    """One declared resource in the shape the validation host sends it."""
    type: str
    urn: str = "unknown"
    name: str = "unknown"
    props: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    property_dependencies: dict[str, list[str]] = Field(
        alias="propertyDependencies", default_factory=dict
    )

    model_config = ConfigDict(populate_by_name=True)


@dataclass(eq=False)
class PolicyResource:
    """A subject linked to the other subjects it references."""
    type: str
    props: Mapping[str, Any]
    urn: str = "unknown"
    name: str = "unknown"
    dependencies: list["PolicyResource"] = field(default_factory=list)
    property_dependencies: dict[str, list["PolicyResource"]] = field(default_factory=dict)

    def is_type(self, resource_type: "ResourceType | str") -> bool:
        return self.type == type_tag(resource_type)

    def __repr__(self) -> str:
        return f"PolicyResource(type={self.type!r}, urn={self.urn!r})"


def build_resources(records: Iterable[SubjectRecord | Mapping[str, Any]]) -> list[PolicyResource]:
    """Parse host records and resolve their urn references.

    Records may be :class:`SubjectRecord` instances or plain mappings. The
    returned list keeps input order. A reference to an urn that is not part
    of the stack is dropped.
    """
    parsed = [
        record if isinstance(record, SubjectRecord) else SubjectRecord.model_validate(record)
        for record in records
    ]

    resources = [
        PolicyResource(type=record.type, props=record.props, urn=record.urn, name=record.name)
        for record in parsed
    ]
    by_urn = {resource.urn: resource for resource in resources}

    def lookup(urn: str, owner: str) -> PolicyResource | None:
        target = by_urn.get(urn)
        if target is None:
            logger.debug(f"Dropping reference from {owner} to unknown resource {urn}")
        return target

    for record, resource in zip(parsed, resources):
        resource.dependencies = [
            dep for dep in (lookup(urn, record.urn) for urn in record.dependencies) if dep is not None
        ]
        for prop, urns in record.property_dependencies.items():
            resource.property_dependencies[prop] = [
                dep for dep in (lookup(urn, record.urn) for urn in urns) if dep is not None
            ]

    logger.debug(f"Built {len(resources)} policy resources")
    return resources


def as_policy_resources(subjects: Iterable[Any]) -> list[PolicyResource]:
    """Accept already-linked resources or raw records."""
    subjects = list(subjects)
    if all(isinstance(subject, PolicyResource) for subject in subjects):
        return subjects
    return build_resources(subjects)
