"""Registration table mapping policy ids to descriptors.

Rule modules receive a :class:`PolicyRegistry` and register their policies
into it. The registry is populated once and then frozen; resolution only
ever reads it.
"""

import logging
from collections.abc import Iterator

from ..errors import RegistrationError
from .models import PolicyDescriptor

logger = logging.getLogger(__name__)

# Name of the global-default field in user configuration.
ALL_KEY = "all"


class PolicyRegistry:
    """Write-once-per-key table of policy descriptors."""

    def __init__(self) -> None:
        self._policies: dict[str, PolicyDescriptor] = {}
        self._names: dict[str, str] = {}
        self._frozen = False

    def register(self, policy_id: str, descriptor: PolicyDescriptor) -> None:
        """Register descriptor under policy_id.

        Raises:
            RegistrationError: If the id is empty or reserved, already
                registered, the descriptor is missing, its name is already
                taken, or the registry is frozen.
        """
        if self._frozen:
            raise RegistrationError("registry is frozen; no further policies can be registered", policy_id)
        if not policy_id:
            raise RegistrationError("policy id must be a non-empty string")
        if policy_id == ALL_KEY:
            raise RegistrationError(f"'{ALL_KEY}' is reserved.")
        if policy_id in self._policies:
            raise RegistrationError(f"{policy_id} already exists.")
        if descriptor is None:
            raise RegistrationError("policy descriptor is missing", policy_id)
        if descriptor.id and descriptor.id != policy_id:
            raise RegistrationError(
                f"descriptor id '{descriptor.id}' does not match registration key", policy_id
            )
        if descriptor.name in self._names:
            raise RegistrationError(
                f"policy name '{descriptor.name}' is already used by {self._names[descriptor.name]}",
                policy_id,
            )

        self._policies[policy_id] = descriptor
        self._names[descriptor.name] = policy_id
        logger.debug(f"Registered policy {policy_id} ({descriptor.name})")

    def add(self, descriptor: PolicyDescriptor) -> PolicyDescriptor:
        """Register descriptor under its own id and return it."""
        self.register(descriptor.id, descriptor)
        return descriptor

    def freeze(self) -> "PolicyRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, policy_id: str) -> PolicyDescriptor | None:
        return self._policies.get(policy_id)

    def ids(self) -> list[str]:
        """Ids in registration order."""
        return list(self._policies)

    def sorted_ids(self) -> list[str]:
        return sorted(self._policies)

    def __contains__(self, policy_id: object) -> bool:
        return policy_id in self._policies

    def __iter__(self) -> Iterator[PolicyDescriptor]:
        return iter(self._policies.values())

    def __len__(self) -> int:
        return len(self._policies)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"PolicyRegistry({len(self)} policies, {state})"
