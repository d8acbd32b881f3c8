"""Configuration model for service graphs."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from liftoff.env import EnvNamespace, envs

from .errors import ConfigurationError

DEFAULT_GRACEFUL_SHUTDOWN_TIMEOUT_MS = 60_000


@dataclass(frozen=True)
class GraphConfig:
    """Lifecycle controls shared by a graph and the plugins it composes."""

    # start services of one level concurrently
    parallel_start_groups: bool = True
    # stop services of one level concurrently
    parallel_stop_groups: bool = True
    # kill the process if shutdown takes longer; defaulted with a warning when unset
    graceful_shutdown_timeout_ms: int | None = None
    # terminate the process after a clean shutdown
    force_exit_after_shutdown: bool = False
    # emit info logs
    verbose: bool = True

    def merged(self, **options: Any) -> "GraphConfig":
        known = {item.name for item in fields(self)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config option(s): {', '.join(unknown)}")
        timeout = options.get("graceful_shutdown_timeout_ms")
        if timeout is not None and timeout <= 0:
            raise ConfigurationError("graceful_shutdown_timeout_ms must be positive")
        return replace(self, **options)

    def as_options(self) -> dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_env(cls, prefix: str = "LIFTOFF_", source: EnvNamespace | None = None) -> "GraphConfig":
        """Build config from environment variables."""

        reader = source or envs
        timeout = reader[f"{prefix}GRACEFUL_SHUTDOWN_TIMEOUT_MS"]
        return cls(
            parallel_start_groups=reader[f"{prefix}PARALLEL_START_GROUPS"].bool(cls.parallel_start_groups),
            parallel_stop_groups=reader[f"{prefix}PARALLEL_STOP_GROUPS"].bool(cls.parallel_stop_groups),
            graceful_shutdown_timeout_ms=timeout.int(min=1) if timeout.raw() is not None else None,
            force_exit_after_shutdown=reader[f"{prefix}FORCE_EXIT_AFTER_SHUTDOWN"].bool(cls.force_exit_after_shutdown),
            verbose=reader[f"{prefix}VERBOSE"].bool(cls.verbose),
        )
