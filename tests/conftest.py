"""Shared fixtures for awsguard tests."""

import pytest

from awsguard.enforcement import EnforcementLevel
from awsguard.policy.models import (
    ConfigField,
    PolicyDescriptor,
    ResolvedPolicy,
    StackValidation,
    validate_resource_of_type,
)
from awsguard.policy.registry import PolicyRegistry
from awsguard.policy.resolver import normalize_override, resolve_config
from awsguard.policy.runner import run_sync
from awsguard.resources import type_tag

INSTANCE = "aws:ec2/instance:Instance"
BUCKET = "aws:s3/bucket:Bucket"


def _noop(props, args, report_violation):
    pass


def make_descriptor(policy_id, level=EnforcementLevel.ADVISORY, config_schema=(), resource_type=INSTANCE,
                    callback=_noop):
    """Small resource policy used by engine tests."""
    return PolicyDescriptor(
        id=policy_id,
        name=policy_id.replace("_", "-"),
        description=f"Test policy {policy_id}",
        default_enforcement_level=level,
        config_schema=config_schema,
        validate_resource=validate_resource_of_type(resource_type, callback),
    )


@pytest.fixture(name="make_descriptor")
def make_descriptor_fixture():
    """Factory for small resource policies."""
    return make_descriptor


@pytest.fixture
def sample_registry():
    """Registry with two simple policies and one configurable one."""
    registry = PolicyRegistry()
    registry.register("a", make_descriptor("a", EnforcementLevel.MANDATORY))
    registry.register("b", make_descriptor("b", EnforcementLevel.ADVISORY))
    registry.register(
        "c_configurable",
        make_descriptor(
            "c_configurable",
            config_schema=(
                ConfigField("check_deletion", "boolean", default=True),
                ConfigField("kms_id", "string"),
                ConfigField("max_age", "integer", default=90, minimum=1, maximum=730),
                ConfigField("allowed_ids", "array", default=[]),
            ),
        ),
    )
    return registry.freeze()


@pytest.fixture
def stack_descriptor():
    """Stack policy that reports once per resource it sees."""
    def check(resources, args, report_violation):
        for resource in resources:
            report_violation(f"saw {resource.name}", resource.urn)

    return PolicyDescriptor(
        id="stack_counter",
        name="stack-counter",
        description="Reports every resource in the stack",
        validate_stack=StackValidation(callback=check),
    )


@pytest.fixture
def make_policy():
    """Resolve a single descriptor with an optional override."""
    def _make(descriptor, override=None, level=EnforcementLevel.MANDATORY):
        return ResolvedPolicy(
            descriptor=descriptor,
            enforcement_level=level,
            config=resolve_config(descriptor, normalize_override(descriptor.id, override)),
        )
    return _make


@pytest.fixture
def check_resource(make_policy):
    """Run a descriptor against one resource and return violation messages."""
    def _check(descriptor, resource_type, props, config=None):
        policy = make_policy(descriptor, config)
        subject = {"type": type_tag(resource_type), "urn": "urn:test:resource", "name": "resource", "props": props}
        return [violation.message for violation in run_sync(policy, [subject])]
    return _check


@pytest.fixture
def check_stack(make_policy):
    """Run a descriptor against a stack of records and return violations."""
    def _check(descriptor, records, config=None):
        return run_sync(make_policy(descriptor, config), records)
    return _check
