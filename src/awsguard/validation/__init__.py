"""Stack validation for awsguard policy packs."""

from .framework import ValidationIssue, ValidationResult, ValidationRunner, ValidationStatus

__all__ = [
    "ValidationIssue",
    "ValidationResult",
    "ValidationRunner",
    "ValidationStatus",
]
