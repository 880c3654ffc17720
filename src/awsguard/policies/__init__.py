"""Built-in awsguard policies.

Each module exposes ``register_policies(registry)``. :func:`build_registry`
calls all of them on a fresh registry, so the set of registered policies
never depends on which modules happen to have been imported.
"""

from functools import lru_cache

from ..policy.registry import PolicyRegistry
from . import api_gateway, compute, database, elasticsearch, iam, network, security, storage
from .security import ClientFactory

BUILTIN_MODULES = (
    api_gateway,
    compute,
    database,
    elasticsearch,
    iam,
    network,
    security,
    storage,
)


def build_registry(client_factory: ClientFactory | None = None) -> PolicyRegistry:
    """Create a frozen registry holding every built-in policy.

    Args:
        client_factory: Creates AWS API clients for policies that query
            live account state (default: ``boto3.client``)
    """
    registry = PolicyRegistry()
    for module in BUILTIN_MODULES:
        if module is security:
            module.register_policies(registry, client_factory=client_factory)
        else:
            module.register_policies(registry)
    return registry.freeze()


@lru_cache(maxsize=1)
def default_registry() -> PolicyRegistry:
    """The shared registry of built-in policies using real AWS clients."""
    return build_registry()


__all__ = ["BUILTIN_MODULES", "build_registry", "default_registry"]
