"""Enforcement levels for awsguard policies."""

from enum import Enum


class EnforcementLevel(str, Enum):
    """Severity at which a policy's violations are treated."""
    MANDATORY = "mandatory"
    ADVISORY = "advisory"
    DISABLED = "disabled"


# Passing no configuration at all is equivalent to {"all": "advisory"}.
DEFAULT_ENFORCEMENT_LEVEL = EnforcementLevel.ADVISORY

_VALUES = frozenset(level.value for level in EnforcementLevel)


def is_enforcement_level(value: object) -> bool:
    """Return True if value is one of the three enforcement levels."""
    if isinstance(value, EnforcementLevel):
        return True
    return isinstance(value, str) and value in _VALUES


def coerce_enforcement_level(value: object) -> EnforcementLevel | None:
    """Convert value to an EnforcementLevel, or None when it is not one."""
    if not is_enforcement_level(value):
        return None
    return EnforcementLevel(value)


def is_disabled(level: object) -> bool:
    """Only the literal disabled level disables a policy."""
    return coerce_enforcement_level(level) is EnforcementLevel.DISABLED
