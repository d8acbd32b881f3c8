"""Error normalization for service graph construction and lifecycle."""

from __future__ import annotations

from enum import Enum


class LifecycleErrorCode(str, Enum):
    DUPLICATE_GROUP = "duplicate_group"
    UNKNOWN_GROUP = "unknown_group"
    INVALID_PLUG_OVERRIDE = "invalid_plug_override"
    UNKNOWN_SERVICE = "unknown_service"
    SERVICE_NOT_STARTED = "service_not_started"
    UNRESOLVED_PLUG = "unresolved_plug"
    PLUG_NOT_READY = "plug_not_ready"
    RESTRICTED_CONTEXT = "restricted_context"
    PLUGIN_CONFLICT = "plugin_conflict"
    PLUGIN_INVALID = "plugin_invalid"
    INVALID_CONFIG = "invalid_config"


class LifecycleError(Exception):
    """Base error raised by the service graph."""

    def __init__(self, code: LifecycleErrorCode, message: str, *, service: str | None = None):
        super().__init__(message)
        self.code = code
        self.service = service


class RegistrationError(LifecycleError):
    """Raised synchronously while the graph is being built."""


class DuplicateGroupError(RegistrationError):
    def __init__(self, group: str):
        super().__init__(LifecycleErrorCode.DUPLICATE_GROUP, f"Group name '{group}' is already used")
        self.group = group


class UnknownGroupError(RegistrationError):
    def __init__(self, group: str):
        super().__init__(LifecycleErrorCode.UNKNOWN_GROUP, f"Unknown group '{group}'")
        self.group = group


class InvalidPlugOverrideError(RegistrationError):
    """Raised when a name is re-registered but the existing entry is not a plug."""

    def __init__(self, name: str, cause: str):
        super().__init__(
            LifecycleErrorCode.INVALID_PLUG_OVERRIDE,
            f"Can't override service '{name}': existing init function {cause}",
            service=name,
        )
        self.cause = cause


class ServiceAccessError(LifecycleError):
    """Raised by the read accessor when a service can't be returned."""


class UnknownServiceError(ServiceAccessError):
    def __init__(self, name: str, message: str | None = None):
        super().__init__(
            LifecycleErrorCode.UNKNOWN_SERVICE,
            message or f"Unknown service '{name}'",
            service=name,
        )


class ServiceNotStartedError(ServiceAccessError):
    def __init__(self, name: str):
        super().__init__(
            LifecycleErrorCode.SERVICE_NOT_STARTED,
            f"Can't access service '{name}' before it was started",
            service=name,
        )


class UnresolvedPlugError(ServiceAccessError):
    def __init__(self, name: str):
        super().__init__(
            LifecycleErrorCode.UNRESOLVED_PLUG,
            f"Can't access service '{name}' - it's a plug",
            service=name,
        )


class PlugNotReadyError(LifecycleError):
    def __init__(self, name: str):
        super().__init__(
            LifecycleErrorCode.PLUG_NOT_READY,
            f"Trying to access uninitialized plug for service '{name}'",
            service=name,
        )


class RestrictedContextError(LifecycleError):
    """Raised when a plug probe touches anything but ``plug()``."""

    def __init__(self, name: str, attribute: str):
        super().__init__(
            LifecycleErrorCode.RESTRICTED_CONTEXT,
            f"Only plug() is available while probing '{name}', got '{attribute}'",
            service=name,
        )


class PluginError(LifecycleError):
    def __init__(self, message: str):
        super().__init__(LifecycleErrorCode.PLUGIN_INVALID, message)


class PluginConflictError(LifecycleError):
    def __init__(self, name: str):
        super().__init__(
            LifecycleErrorCode.PLUGIN_CONFLICT,
            f"Plugin service {name} is conflicting with existing service {name}",
            service=name,
        )


class ConfigurationError(LifecycleError):
    def __init__(self, message: str):
        super().__init__(LifecycleErrorCode.INVALID_CONFIG, message)
