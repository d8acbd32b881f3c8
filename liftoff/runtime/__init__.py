"""Service graph registry, lifecycle engine and shutdown orchestration."""

from .accessor import LookupStatus, ServiceAccessor, ServiceLookup
from .config import DEFAULT_GRACEFUL_SHUTDOWN_TIMEOUT_MS, GraphConfig
from .context import ReadOnlyContext, ServiceContext
from .errors import (
    ConfigurationError,
    DuplicateGroupError,
    InvalidPlugOverrideError,
    LifecycleError,
    LifecycleErrorCode,
    PlugNotReadyError,
    PluginConflictError,
    PluginError,
    RegistrationError,
    RestrictedContextError,
    ServiceAccessError,
    ServiceNotStartedError,
    UnknownGroupError,
    UnknownServiceError,
    UnresolvedPlugError,
)
from .graph import ServiceGraph
from .plug import Plug, is_unresolved_plug
from .shutdown import ProcessTerminator, ShutdownController, ShutdownPhase, ShutdownState, terminate_process

__all__ = [
    "ConfigurationError",
    "DEFAULT_GRACEFUL_SHUTDOWN_TIMEOUT_MS",
    "DuplicateGroupError",
    "GraphConfig",
    "InvalidPlugOverrideError",
    "LifecycleError",
    "LifecycleErrorCode",
    "LookupStatus",
    "Plug",
    "PlugNotReadyError",
    "PluginConflictError",
    "PluginError",
    "ProcessTerminator",
    "ReadOnlyContext",
    "RegistrationError",
    "RestrictedContextError",
    "ServiceAccessError",
    "ServiceAccessor",
    "ServiceContext",
    "ServiceGraph",
    "ServiceLookup",
    "ServiceNotStartedError",
    "ShutdownController",
    "ShutdownPhase",
    "ShutdownState",
    "UnknownGroupError",
    "UnknownServiceError",
    "UnresolvedPlugError",
    "is_unresolved_plug",
    "terminate_process",
]
