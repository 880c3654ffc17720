"""Tests for subject records and the linked resource graph."""

import pytest
from pydantic import ValidationError

from awsguard.resources import (
    PolicyResource,
    ResourceType,
    SubjectRecord,
    as_policy_resources,
    build_resources,
    type_tag,
)

ROLE = {"type": ResourceType.IAM_ROLE.value, "urn": "urn:role", "name": "role", "props": {}}
ATTACHMENT = {
    "type": ResourceType.IAM_ROLE_POLICY_ATTACHMENT.value,
    "urn": "urn:attach",
    "name": "attach",
    "props": {"role": "role"},
    "dependencies": ["urn:role", "urn:elsewhere"],
    "propertyDependencies": {"role": ["urn:role"], "policyArn": ["urn:elsewhere"]},
}


class TestSubjectRecord:
    """Test parsing of host records."""

    def test_defaults(self):
        record = SubjectRecord(type="aws:s3/bucket:Bucket")
        assert record.urn == "unknown"
        assert record.name == "unknown"
        assert record.props == {}
        assert record.property_dependencies == {}

    def test_camel_case_alias(self):
        record = SubjectRecord.model_validate(ATTACHMENT)
        assert record.property_dependencies["role"] == ["urn:role"]

    def test_type_is_required(self):
        with pytest.raises(ValidationError):
            SubjectRecord.model_validate({"urn": "urn:x"})


class TestBuildResources:
    """Test linking records into a graph."""

    def test_references_are_resolved(self):
        role, attachment = build_resources([ROLE, ATTACHMENT])

        assert attachment.dependencies == [role]
        assert attachment.property_dependencies["role"] == [role]
        assert attachment.property_dependencies["policyArn"] == []
        assert role.dependencies == []

    def test_input_order_is_kept(self):
        resources = build_resources([ATTACHMENT, ROLE])
        assert [resource.urn for resource in resources] == ["urn:attach", "urn:role"]
        assert resources[0].dependencies == [resources[1]]

    def test_as_policy_resources_passes_linked_resources_through(self):
        resources = build_resources([ROLE])
        assert as_policy_resources(resources) == resources
        assert as_policy_resources(resources)[0] is resources[0]

    def test_as_policy_resources_accepts_records(self):
        resources = as_policy_resources([SubjectRecord.model_validate(ROLE)])
        assert isinstance(resources[0], PolicyResource)
        assert resources[0].is_type(ResourceType.IAM_ROLE)


class TestTypeTag:
    """Test type tokens."""

    def test_enum_and_string(self):
        assert type_tag(ResourceType.EC2_INSTANCE) == "aws:ec2/instance:Instance"
        assert type_tag("aws:sns/topic:Topic") == "aws:sns/topic:Topic"
