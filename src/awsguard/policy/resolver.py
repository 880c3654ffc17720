"""Resolve effective enforcement levels and config for registered policies.

User configuration is a mapping with an optional ``all`` entry (the global
default enforcement level) and one optional entry per policy id. A per-policy
entry is either an enforcement level or a mapping with an optional
``enforcement_level`` (``enforcementLevel``) plus policy-specific config
fields. Explicit per-policy settings always win over ``all``, in both
directions.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from ..enforcement import (
    DEFAULT_ENFORCEMENT_LEVEL,
    EnforcementLevel,
    coerce_enforcement_level,
)
from ..errors import ConfigurationError
from .models import PolicyDescriptor, ResolvedPolicy
from .registry import ALL_KEY, PolicyRegistry

logger = logging.getLogger(__name__)

LEVEL_KEYS = ("enforcement_level", "enforcementLevel")

UserConfig = Mapping[str, Any] | EnforcementLevel | str | None


@dataclass(frozen=True)
class Override:
    """A normalised per-policy override."""
    enforcement_level: EnforcementLevel | None = None
    config: Mapping[str, Any] = field(default_factory=dict)


def normalize_user_config(user_config: UserConfig) -> dict[str, Any]:
    """Turn any accepted config shape into a mapping with a valid ``all``."""
    if not user_config:
        return {ALL_KEY: DEFAULT_ENFORCEMENT_LEVEL}
    if isinstance(user_config, str):
        user_config = {ALL_KEY: user_config}
    if not isinstance(user_config, Mapping):
        raise ConfigurationError(
            f"configuration must be a mapping or an enforcement level, got {type(user_config).__name__}"
        )

    normalized = dict(user_config)
    global_level = coerce_enforcement_level(normalized.get(ALL_KEY))
    if global_level is None:
        if normalized.get(ALL_KEY):
            logger.warning(
                f"Ignoring unknown enforcement level {normalized[ALL_KEY]!r} for '{ALL_KEY}'; "
                f"using {DEFAULT_ENFORCEMENT_LEVEL.value}"
            )
        global_level = DEFAULT_ENFORCEMENT_LEVEL
    normalized[ALL_KEY] = global_level
    return normalized


def normalize_override(policy_id: str, value: Any) -> Override | None:
    """Normalise one per-policy override, or return None when absent.

    Falsy values count as absent. A bare enforcement level string is the
    same as ``{"enforcement_level": value}``. Unknown level strings are
    treated as absent rather than rejected.

    Raises:
        ConfigurationError: If the value is neither a level nor a mapping.
    """
    if not value:
        return None

    if isinstance(value, str):
        level = coerce_enforcement_level(value)
        if level is None:
            logger.warning(f"Ignoring unknown enforcement level {value!r} for {policy_id}")
            return None
        return Override(enforcement_level=level)

    if isinstance(value, Mapping):
        config = dict(value)
        raw_levels = [config.pop(key) for key in LEVEL_KEYS if key in config]
        level = None
        for raw_level in raw_levels:
            if raw_level is None:
                continue
            coerced = coerce_enforcement_level(raw_level)
            if coerced is None:
                logger.warning(f"Ignoring unknown enforcement level {raw_level!r} for {policy_id}")
            elif level is None:
                level = coerced
        return Override(enforcement_level=level, config=config)

    raise ConfigurationError(
        f"override must be an enforcement level or a mapping, got {type(value).__name__}",
        policy_id,
    )


def resolve_level(override: Override | None, global_level: EnforcementLevel) -> EnforcementLevel:
    """Explicit per-policy level first, otherwise the global default."""
    if override is not None and override.enforcement_level is not None:
        return override.enforcement_level
    return global_level


def resolve_config(descriptor: PolicyDescriptor, override: Override | None) -> Mapping[str, Any]:
    """Merge override fields over the descriptor's schema defaults.

    Raises:
        ConfigurationError: If a field is unknown, mistyped or out of range.
    """
    values = {
        key: value
        for key, value in (override.config if override else {}).items()
        if value is not None
    }
    try:
        model = descriptor.config_model.model_validate(values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"invalid configuration ({problems})", descriptor.id) from e
    return MappingProxyType(model.model_dump())


def resolve(registry: PolicyRegistry, user_config: UserConfig = None) -> list[ResolvedPolicy]:
    """Resolve every registered policy against user configuration.

    Args:
        registry: Registered policies
        user_config: None, a bare enforcement level, or a mapping of
            ``all`` and per-policy overrides

    Returns:
        Enabled policies sorted by id; disabled ones are left out.

    Raises:
        ConfigurationError: If an override has a malformed shape or an
            invalid config value.
    """
    config = normalize_user_config(user_config)
    global_level: EnforcementLevel = config[ALL_KEY]

    for key in config:
        if key != ALL_KEY and key not in registry:
            logger.warning(f"Ignoring configuration for unknown policy '{key}'")

    resolved: list[ResolvedPolicy] = []
    for policy_id in registry.sorted_ids():
        descriptor = registry.get(policy_id)
        override = normalize_override(policy_id, config.get(policy_id))
        level = resolve_level(override, global_level)

        if level is EnforcementLevel.DISABLED:
            logger.debug(f"Policy {policy_id} is disabled")
            continue

        resolved.append(
            ResolvedPolicy(
                descriptor=descriptor,
                enforcement_level=level,
                config=resolve_config(descriptor, override),
            )
        )

    logger.debug(f"Resolved {len(resolved)} of {len(registry)} policies (all={global_level.value})")
    return resolved


def to_host_config(registry: PolicyRegistry, user_config: UserConfig = None) -> dict[str, Any] | None:
    """Re-key user configuration by external policy name.

    The validation host identifies policies by name rather than by id. Falsy
    entries and ids that are not registered are skipped. Returns None when
    no configuration was given.
    """
    if user_config is None:
        return None
    if isinstance(user_config, str):
        user_config = {ALL_KEY: user_config}

    result: dict[str, Any] = {}
    for key, value in user_config.items():
        if not value:
            continue
        if key == ALL_KEY:
            result[ALL_KEY] = value.value if isinstance(value, EnforcementLevel) else value
            continue
        descriptor = registry.get(key)
        if descriptor is not None:
            result[descriptor.name] = value.value if isinstance(value, EnforcementLevel) else value
    return result
