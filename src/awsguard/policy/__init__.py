"""Policy registration, resolution, dispatch and pack assembly."""

from .models import (
    ConfigField,
    PolicyDescriptor,
    ResolvedPolicy,
    ResourceValidation,
    ResourceValidationArgs,
    StackValidation,
    StackValidationArgs,
    Violation,
    validate_resource_of_type,
    validate_stack_resources_of_type,
)
from .pack import AwsGuard, PolicyPack, assemble, get_name_and_args
from .registry import ALL_KEY, PolicyRegistry
from .resolver import normalize_override, resolve, to_host_config
from .runner import run, run_resource_policy, run_stack_policy, run_sync

__all__ = [
    "ALL_KEY",
    "AwsGuard",
    "ConfigField",
    "PolicyDescriptor",
    "PolicyPack",
    "PolicyRegistry",
    "ResolvedPolicy",
    "ResourceValidation",
    "ResourceValidationArgs",
    "StackValidation",
    "StackValidationArgs",
    "Violation",
    "assemble",
    "get_name_and_args",
    "normalize_override",
    "resolve",
    "run",
    "run_resource_policy",
    "run_stack_policy",
    "run_sync",
    "to_host_config",
    "validate_resource_of_type",
    "validate_stack_resources_of_type",
]
