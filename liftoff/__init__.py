"""Leveled startup and graceful shutdown for asyncio services."""

from typing import Any

from .env import EnvVarError, envs
from .runtime import (
    GraphConfig,
    LifecycleError,
    LookupStatus,
    Plug,
    ProcessTerminator,
    ServiceGraph,
)


def create_graph(*, terminator: ProcessTerminator | None = None, **options: Any) -> ServiceGraph:
    """Build an empty graph with ``options`` applied over the default config."""
    return ServiceGraph(GraphConfig().merged(**options), terminator=terminator)


__all__ = [
    "EnvVarError",
    "GraphConfig",
    "LifecycleError",
    "LookupStatus",
    "Plug",
    "ServiceGraph",
    "create_graph",
    "envs",
]
