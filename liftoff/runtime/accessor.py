"""Guarded read access to running service instances."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .definitions import ServiceDefinition
from .errors import ServiceNotStartedError, UnknownServiceError, UnresolvedPlugError
from .plug import Plug, is_unresolved_plug


class LookupStatus(str, Enum):
    READY = "ready"
    NOT_FOUND = "not_found"
    NOT_STARTED = "not_started"
    UNRESOLVED_PLUG = "unresolved_plug"


@dataclass(frozen=True, slots=True)
class ServiceLookup:
    name: str
    status: LookupStatus
    value: Any = None

    @property
    def ready(self) -> bool:
        return self.status is LookupStatus.READY


class ServiceAccessor:
    """Read view over a graph's registry.

    ``services.db``, ``services["db"]`` and ``services.get("db")`` raise a
    :class:`~liftoff.runtime.errors.ServiceAccessError` subclass when the
    service is unknown, not started, or still an unresolved plug.
    ``lookup()`` reports the same outcomes without raising.

    Services named like an accessor method (``get``, ``lookup``, ``plug``,
    ``names``) are shadowed for attribute access; read them with
    ``services["get"]`` or ``services.get("get")``.
    """

    __slots__ = ("_definitions", "_visible", "_scope")

    def __init__(
        self,
        definitions: Mapping[str, ServiceDefinition],
        visible: Callable[[ServiceDefinition], bool] | None = None,
        scope: str | None = None,
    ) -> None:
        self._definitions = definitions
        self._visible = visible
        self._scope = scope

    def lookup(self, name: str) -> ServiceLookup:
        definition = self._find(name)
        if definition is None:
            return ServiceLookup(name, LookupStatus.NOT_FOUND)
        if not definition.running:
            return ServiceLookup(name, LookupStatus.NOT_STARTED)
        if is_unresolved_plug(definition.instance):
            return ServiceLookup(name, LookupStatus.UNRESOLVED_PLUG, definition.instance)
        return ServiceLookup(name, LookupStatus.READY, definition.instance)

    def get(self, name: str) -> Any:
        result = self.lookup(name)
        if result.status is LookupStatus.READY:
            return result.value
        if result.status is LookupStatus.NOT_FOUND:
            if self._scope is not None and name in self._definitions:
                raise UnknownServiceError(name, f"Service '{name}' is not visible in group '{self._scope}'")
            raise UnknownServiceError(name)
        if result.status is LookupStatus.NOT_STARTED:
            raise ServiceNotStartedError(name)
        raise UnresolvedPlugError(name)

    def plug(self, name: str) -> Plug[Any]:
        """Return the shared plug cell for ``name`` so callers can probe ``ready``."""

        definition = self._find(name)
        if definition is None:
            raise UnknownServiceError(name)
        if definition.plug is None:
            raise UnknownServiceError(name, f"Service '{name}' has no plug")
        return definition.plug

    def names(self) -> list[str]:
        return [name for name in self._definitions if self._find(name) is not None]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return self.get(name)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._find(name) is not None

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self.names()))

    def _find(self, name: str) -> ServiceDefinition | None:
        definition = self._definitions.get(name)
        if definition is None or self._visible is None or self._visible(definition):
            return definition
        return None
