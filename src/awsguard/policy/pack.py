"""Policy pack assembly and the AwsGuard entry point."""

import asyncio
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from ..enforcement import EnforcementLevel, is_enforcement_level
from ..errors import ConfigurationError
from ..resources import PolicyResource, as_policy_resources
from .models import ResolvedPolicy, Violation
from .registry import PolicyRegistry
from .resolver import UserConfig, resolve, to_host_config
from .runner import run, run_resource_policy, run_stack_policy

logger = logging.getLogger(__name__)

DEFAULT_POLICY_PACK_NAME = "pulumi-awsguard"


def assemble(resolved: Iterable[ResolvedPolicy]) -> list[ResolvedPolicy]:
    """Order resolved policies by id, leaving out any disabled entries."""
    return sorted(
        (policy for policy in resolved if policy.enforcement_level is not EnforcementLevel.DISABLED),
        key=lambda policy: policy.id,
    )


class PolicyPack:
    """An immutable, ordered collection of active policies."""

    def __init__(self, name: str, policies: Iterable[ResolvedPolicy]):
        self.name = name
        self._policies = tuple(assemble(policies))
        self._by_name = {policy.name: policy for policy in self._policies}

    @property
    def policies(self) -> tuple[ResolvedPolicy, ...]:
        return self._policies

    def names(self) -> list[str]:
        return [policy.name for policy in self._policies]

    def get(self, name: str) -> ResolvedPolicy | None:
        return self._by_name.get(name)

    def __iter__(self) -> Iterator[ResolvedPolicy]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "name": self.name,
            "policies": [policy.to_dict() for policy in self._policies],
        }


def get_name_and_args(
    name_or_args: str | Mapping[str, Any] | None = None,
    args: Mapping[str, Any] | None = None,
) -> tuple[str, Mapping[str, Any] | None]:
    """Split the AwsGuard constructor arguments into a pack name and args.

    An enforcement level (enum or plain string) sets the level for `all`.
    Any other string is the pack name. A mapping first argument is the
    args, in which case any second argument is ignored.
    """
    name = DEFAULT_POLICY_PACK_NAME
    if is_enforcement_level(name_or_args):
        args = {"all": EnforcementLevel(name_or_args)}
    elif isinstance(name_or_args, str):
        name = name_or_args
    elif isinstance(name_or_args, Mapping):
        args = name_or_args
    elif name_or_args is not None:
        raise ConfigurationError(
            f"AwsGuard expects a pack name or a configuration mapping, got {type(name_or_args).__name__}"
        )
    return name, args


class AwsGuard:
    """A policy pack of rules enforcing AWS best practices.

    With no arguments every registered policy is enabled at the default
    enforcement level::

        guard = AwsGuard()

    Make everything mandatory, but keep one policy advisory::

        guard = AwsGuard(all="mandatory", ec2_instance_no_public_ip="advisory")

    Disable everything except the policies named explicitly::

        guard = AwsGuard({"all": "disabled", "elb_access_logging_enabled": "mandatory"})

    Policies with configuration take a mapping::

        guard = AwsGuard(
            ec2_volume_in_use={"check_deletion": False},
            encrypted_volumes={"enforcement_level": "mandatory", "kms_id": "id"},
        )
    """

    def __init__(
        self,
        name_or_args: str | Mapping[str, Any] | None = None,
        args: Mapping[str, Any] | None = None,
        *,
        registry: PolicyRegistry | None = None,
        **overrides: Any,
    ):
        name, args = get_name_and_args(name_or_args, args)
        if overrides:
            args = {**(args or {}), **overrides}

        if registry is None:
            from ..policies import default_registry

            registry = default_registry()

        self.name = name
        self.args: UserConfig = args
        self.registry = registry
        self.pack = PolicyPack(name, resolve(registry, args))
        logger.info(f"Assembled policy pack {name} with {len(self.pack)} of {len(registry)} policies")

    @property
    def policies(self) -> tuple[ResolvedPolicy, ...]:
        return self.pack.policies

    def initial_config(self) -> dict[str, Any] | None:
        """User configuration keyed by policy name, as the host expects it."""
        return to_host_config(self.registry, self.args)

    async def validate_resource(self, subject: Any) -> dict[str, list[Violation]]:
        """Run every resource policy against one resource.

        Returns violations keyed by policy name; policies that found nothing
        are omitted.
        """
        resource = subject if isinstance(subject, PolicyResource) else as_policy_resources([subject])[0]
        results: dict[str, list[Violation]] = {}
        for policy in self.pack:
            if policy.descriptor.kind != "resource":
                continue
            violations = await run_resource_policy(policy, resource)
            if violations:
                results[policy.name] = violations
        return results

    async def validate_stack(self, subjects: Iterable[Any]) -> dict[str, list[Violation]]:
        """Run every stack policy over the whole resource graph."""
        resources = as_policy_resources(subjects)
        results: dict[str, list[Violation]] = {}
        for policy in self.pack:
            if policy.descriptor.kind != "stack":
                continue
            violations = await run_stack_policy(policy, resources)
            if violations:
                results[policy.name] = violations
        return results

    async def run_policy(self, name: str, subjects: Iterable[Any]) -> list[Violation]:
        policy = self.pack.get(name)
        if policy is None:
            raise KeyError(f"Policy {name} is not active in pack {self.name}")
        return await run(policy, subjects)

    def validate(self, subjects: Iterable[Any]):
        """Validate a whole stack and return a ValidationResult."""
        from ..validation import ValidationRunner

        return asyncio.run(ValidationRunner(self.pack).validate(subjects))
