"""awsguard - AWS best-practice policies for declared infrastructure.

awsguard registers compliance policies into an explicit registry, resolves
their enforcement levels and configuration from layered user input, and
dispatches declared resources to the typed checks of every active policy.
"""

__version__ = "0.1.0"
__author__ = "awsguard contributors"
__description__ = "AWS best-practice compliance policies for infrastructure-as-code"

from awsguard.enforcement import DEFAULT_ENFORCEMENT_LEVEL, EnforcementLevel
from awsguard.errors import ConfigurationError, RegistrationError
from awsguard.policy.pack import AwsGuard, PolicyPack, assemble
from awsguard.policy.registry import PolicyRegistry
from awsguard.policy.resolver import resolve
from awsguard.policy.runner import run

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "AwsGuard",
    "ConfigurationError",
    "DEFAULT_ENFORCEMENT_LEVEL",
    "EnforcementLevel",
    "PolicyPack",
    "PolicyRegistry",
    "RegistrationError",
    "assemble",
    "resolve",
    "run",
]
