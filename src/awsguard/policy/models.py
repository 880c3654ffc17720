"""Core policy data structures.

A :class:`PolicyDescriptor` is what a rule module registers. It names the
policy, declares its configuration schema and carries one or more typed
validation callbacks. Resolution turns a descriptor into a
:class:`ResolvedPolicy`, and running a resolved policy produces
:class:`Violation` records.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic.alias_generators import to_camel

from ..enforcement import DEFAULT_ENFORCEMENT_LEVEL, EnforcementLevel
from ..resources import PolicyResource, ResourceType, type_tag

ReportViolation = Callable[..., None]
ResourceCallback = Callable[[Mapping[str, Any], "ResourceValidationArgs", ReportViolation], Any]
StackCallback = Callable[[list[PolicyResource], "StackValidationArgs", ReportViolation], Any]

_FIELD_TYPES: dict[str, Any] = {
    "boolean": bool,
    "number": Union[int, float],
    "integer": int,
    "string": str,
    "array": list[str],
}


@dataclass(frozen=True)
class ConfigField:
    """One named, typed configuration field of a policy."""
    name: str
    type: str
    default: Any = None
    description: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None

    def __post_init__(self):
        if self.type not in _FIELD_TYPES:
            raise ValueError(
                f"Unsupported config field type '{self.type}'. "
                f"Allowed: {', '.join(sorted(_FIELD_TYPES))}"
            )

    @property
    def alias(self) -> str:
        return to_camel(self.name)

    def annotation(self) -> Any:
        constraints = {
            key: value
            for key, value in (
                ("ge", self.minimum),
                ("le", self.maximum),
                ("gt", self.exclusive_minimum),
            )
            if value is not None
        }
        base = _FIELD_TYPES[self.type]
        if constraints:
            base = Annotated[base, Field(**constraints)]
        return Optional[base]

    def default_value(self) -> Any:
        # Fresh copy so list defaults are never shared between resolutions
        if isinstance(self.default, list):
            return list(self.default)
        return self.default


@dataclass(frozen=True)
class Violation:
    """A single report that a resource failed a policy."""
    message: str
    urn: str | None = None

    def __str__(self) -> str:
        return f"{self.message} (URN={self.urn})" if self.urn else self.message


@dataclass(frozen=True)
class ResourceValidationArgs:
    """Arguments handed to a resource validation callback."""
    resource: PolicyResource
    config: Mapping[str, Any]

    @property
    def type(self) -> str:
        return self.resource.type

    @property
    def urn(self) -> str:
        return self.resource.urn

    @property
    def name(self) -> str:
        return self.resource.name

    @property
    def props(self) -> Mapping[str, Any]:
        return self.resource.props

    def get_config(self) -> Mapping[str, Any]:
        return self.config


@dataclass(frozen=True)
class StackValidationArgs:
    """Arguments handed to a stack validation callback."""
    resources: list[PolicyResource]
    config: Mapping[str, Any]

    def get_config(self) -> Mapping[str, Any]:
        return self.config

    def resources_of_type(self, *resource_types: ResourceType | str) -> list[PolicyResource]:
        """Resources matching any of resource_types, in stack order."""
        tags = {type_tag(resource_type) for resource_type in resource_types}
        return [resource for resource in self.resources if resource.type in tags]


@dataclass(frozen=True)
class ResourceValidation:
    """A resource callback bound to the resource type tags it accepts."""
    resource_types: tuple[str, ...]
    callback: ResourceCallback

    def accepts(self, resource: PolicyResource) -> bool:
        return resource.type in self.resource_types


@dataclass(frozen=True)
class StackValidation:
    """A stack callback, optionally narrowed to one resource type."""
    callback: StackCallback
    resource_types: tuple[str, ...] | None = None

    def select(self, resources: list[PolicyResource]) -> list[PolicyResource]:
        if self.resource_types is None:
            return resources
        return [resource for resource in resources if resource.type in self.resource_types]


def validate_resource_of_type(
    resource_types: ResourceType | str | Iterable[ResourceType | str],
    callback: ResourceCallback,
) -> ResourceValidation:
    """Bind callback to one or more resource type tags."""
    if isinstance(resource_types, (ResourceType, str)):
        resource_types = [resource_types]
    tags = tuple(type_tag(resource_type) for resource_type in resource_types)
    if not tags:
        raise ValueError("validate_resource_of_type requires at least one resource type")
    return ResourceValidation(resource_types=tags, callback=callback)


def validate_stack_resources_of_type(
    resource_type: ResourceType | str,
    callback: StackCallback,
) -> StackValidation:
    """Bind a stack callback that only sees resources of one type."""
    return StackValidation(callback=callback, resource_types=(type_tag(resource_type),))


@dataclass(frozen=True)
class PolicyDescriptor:
    """Everything a rule module declares about one policy."""
    id: str
    name: str
    description: str
    default_enforcement_level: EnforcementLevel = DEFAULT_ENFORCEMENT_LEVEL
    config_schema: tuple[ConfigField, ...] = ()
    validate_resource: ResourceValidation | Sequence[ResourceValidation] | None = None
    validate_stack: StackValidation | None = None

    def __post_init__(self):
        if (self.validate_resource is None) == (self.validate_stack is None):
            raise ValueError(
                f"Policy '{self.name}' must define exactly one of validate_resource or validate_stack"
            )
        if isinstance(self.validate_resource, ResourceValidation):
            object.__setattr__(self, "validate_resource", (self.validate_resource,))
        elif self.validate_resource is not None:
            object.__setattr__(self, "validate_resource", tuple(self.validate_resource))
            if not self.validate_resource:
                raise ValueError(f"Policy '{self.name}' has an empty validate_resource list")
        object.__setattr__(self, "config_schema", tuple(self.config_schema))
        object.__setattr__(
            self, "default_enforcement_level", EnforcementLevel(self.default_enforcement_level)
        )

    @property
    def kind(self) -> str:
        return "stack" if self.validate_stack is not None else "resource"

    @property
    def resource_validations(self) -> tuple[ResourceValidation, ...]:
        return self.validate_resource or ()

    @cached_property
    def config_model(self) -> type[BaseModel]:
        """Pydantic model composed from this policy's config schema."""
        fields = {
            config_field.name: (
                config_field.annotation(),
                Field(
                    default_factory=config_field.default_value,
                    alias=config_field.alias,
                    description=config_field.description,
                ),
            )
            for config_field in self.config_schema
        }
        model_name = "".join(part.capitalize() for part in self.id.split("_")) + "Config"
        return create_model(
            model_name,
            __config__=ConfigDict(populate_by_name=True, extra="forbid"),
            **fields,
        )


@dataclass(frozen=True)
class ResolvedPolicy:
    """A descriptor with its effective enforcement level and config bag."""
    descriptor: PolicyDescriptor
    enforcement_level: EnforcementLevel
    config: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def description(self) -> str:
        return self.descriptor.description

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.descriptor.kind,
            "enforcementLevel": self.enforcement_level.value,
            "defaultEnforcementLevel": self.descriptor.default_enforcement_level.value,
            "config": dict(self.config),
        }
