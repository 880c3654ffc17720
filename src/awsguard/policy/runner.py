"""Dispatch resources to the typed validation callbacks of a policy.

Callbacks run one at a time. When a callback returns an awaitable it is
awaited before the next callback starts, so violations always come out in
the order they were reported. Exceptions raised by a callback propagate to
the caller unchanged.
"""

import asyncio
import inspect
import logging
from collections.abc import Iterable
from typing import Any

from ..resources import PolicyResource, as_policy_resources
from .models import (
    ResolvedPolicy,
    ResourceValidation,
    ResourceValidationArgs,
    StackValidationArgs,
    Violation,
)

logger = logging.getLogger(__name__)


class ViolationCollector:
    """Callable handed to callbacks as ``report_violation``."""

    def __init__(self, default_urn: str | None = None):
        self.default_urn = default_urn
        self.violations: list[Violation] = []

    def __call__(self, message: str, urn: str | None = None) -> None:
        self.violations.append(Violation(message=message, urn=urn or self.default_urn))


async def _invoke(policy: ResolvedPolicy, callback, *args: Any) -> None:
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Policy {policy.name} failed with error: {e}")
        raise


async def _run_validation(
    policy: ResolvedPolicy,
    validation: ResourceValidation,
    resource: PolicyResource,
) -> list[Violation]:
    report = ViolationCollector(default_urn=resource.urn)
    args = ResourceValidationArgs(resource=resource, config=policy.config)
    await _invoke(policy, validation.callback, resource.props, args, report)
    return report.violations


async def run_resource_policy(policy: ResolvedPolicy, resource: PolicyResource) -> list[Violation]:
    """Run every typed callback of a resource policy against one resource."""
    if policy.descriptor.kind != "resource":
        raise TypeError(f"Policy {policy.name} is not a resource validation policy")

    violations: list[Violation] = []
    for validation in policy.descriptor.resource_validations:
        if validation.accepts(resource):
            violations.extend(await _run_validation(policy, validation, resource))
    return violations


async def run_stack_policy(policy: ResolvedPolicy, resources: Iterable[Any]) -> list[Violation]:
    """Run a stack policy once over the whole resource graph."""
    stack_validation = policy.descriptor.validate_stack
    if stack_validation is None:
        raise TypeError(f"Policy {policy.name} is not a stack validation policy")

    resources = as_policy_resources(resources)
    selected = stack_validation.select(resources)
    report = ViolationCollector()
    args = StackValidationArgs(resources=resources, config=policy.config)
    await _invoke(policy, stack_validation.callback, selected, args, report)
    return report.violations


async def run(policy: ResolvedPolicy, subjects: Iterable[Any]) -> list[Violation]:
    """Run a resolved policy over a collection of subjects.

    Resource policies narrow the subjects per callback and check each
    match; violations of all callbacks are concatenated in callback order.
    Stack policies are invoked once with every subject.
    """
    resources = as_policy_resources(subjects)
    logger.debug(f"Running {policy.descriptor.kind} policy {policy.name} over {len(resources)} resources")

    if policy.descriptor.kind == "stack":
        return await run_stack_policy(policy, resources)

    violations: list[Violation] = []
    for validation in policy.descriptor.resource_validations:
        for resource in resources:
            if validation.accepts(resource):
                violations.extend(await _run_validation(policy, validation, resource))
    return violations


def run_sync(policy: ResolvedPolicy, subjects: Iterable[Any]) -> list[Violation]:
    """Blocking wrapper around :func:`run` for callers without an event loop."""
    return asyncio.run(run(policy, subjects))
