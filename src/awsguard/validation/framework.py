"""Host-facing validation of a whole stack against a policy pack.

Resource policies are run against every resource and stack policies once
against the full resource graph, policy by policy in pack order. Issues
from mandatory policies fail the run, issues from advisory policies only
warn.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..enforcement import EnforcementLevel
from ..policy.runner import run_resource_policy, run_stack_policy
from ..resources import as_policy_resources

if TYPE_CHECKING:
    from ..policy.pack import PolicyPack

logger = logging.getLogger(__name__)


class ValidationStatus(str, Enum):
    """Overall outcome of a validation run."""
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


_LEVEL_STATUS = {
    EnforcementLevel.MANDATORY: ValidationStatus.FAIL,
    EnforcementLevel.ADVISORY: ValidationStatus.WARN,
}


@dataclass
class ValidationIssue:
    """A violation attributed to the policy that reported it."""
    policy: str
    enforcement_level: EnforcementLevel
    message: str
    urn: str | None = None

    def __str__(self) -> str:
        location = f" ({self.urn})" if self.urn else ""
        return f"[{self.enforcement_level.value.upper()}] {self.policy}: {self.message}{location}"


@dataclass
class ValidationResult:
    """Results of a validation run."""
    status: ValidationStatus = ValidationStatus.PASS
    issues: list[ValidationIssue] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        """Exit code for CI: 0 = pass/warn, 1 = fail."""
        return 0 if self.status != ValidationStatus.FAIL else 1

    def add_issue(self, policy: str, enforcement_level: EnforcementLevel, message: str,
                  urn: str | None = None) -> None:
        """Add an issue and update the overall status (fail > warn > pass)."""
        self.issues.append(ValidationIssue(policy, enforcement_level, message, urn))
        self.increment_counter(f"violations_{enforcement_level.value}")

        severity = _LEVEL_STATUS.get(enforcement_level)
        if severity == ValidationStatus.FAIL:
            self.status = ValidationStatus.FAIL
        elif severity == ValidationStatus.WARN and self.status == ValidationStatus.PASS:
            self.status = ValidationStatus.WARN

    def increment_counter(self, name: str, value: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + value

    def issues_for(self, policy: str) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.policy == policy]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "exit_code": self.exit_code,
            "counters": self.counters,
            "issues": [
                {
                    "policy": issue.policy,
                    "enforcementLevel": issue.enforcement_level.value,
                    "message": issue.message,
                    "urn": issue.urn,
                }
                for issue in self.issues
            ],
        }


class ValidationRunner:
    """Runs every policy of a pack over a stack of resources."""

    def __init__(self, pack: "PolicyPack"):
        self.pack = pack

    async def validate(self, subjects: Iterable[Any]) -> ValidationResult:
        """Validate subjects against the pack.

        Args:
            subjects: Subject records or already linked PolicyResources

        Returns:
            ValidationResult with status, issues and counters

        Callback exceptions propagate to the caller.
        """
        resources = as_policy_resources(subjects)
        result = ValidationResult()
        result.counters["resources_checked"] = len(resources)

        logger.info(f"Starting validation of {len(resources)} resources with pack {self.pack.name}")
        logger.info(f"Running {len(self.pack)} policies")

        for policy in self.pack:
            logger.debug(f"Executing policy: {policy.name}")
            if policy.descriptor.kind == "stack":
                violations = await run_stack_policy(policy, resources)
            else:
                violations = []
                for resource in resources:
                    violations.extend(await run_resource_policy(policy, resource))

            for violation in violations:
                result.add_issue(policy.name, policy.enforcement_level, violation.message, violation.urn)
            result.increment_counter("policies_run")

        logger.info(f"Validation completed with status: {result.status.value}")
        logger.info(f"Found {len(result.issues)} issues")
        return result
