"""Forward-reference placeholders for services defined at a later level."""

from __future__ import annotations

from typing import Any, Generic, NoReturn, TypeVar

from .errors import PlugNotReadyError, RestrictedContextError

T = TypeVar("T")

_UNSET: Any = object()


class Plug(Generic[T]):
    """Shared indirection cell handed out in place of a not-yet-started service.

    Every holder shares the same cell, so resolving it once rewires all
    references. Only the graph engine writes to the cell.
    """

    __slots__ = ("_name", "_value")

    def __init__(self, name: str) -> None:
        self._name = name
        self._value: Any = _UNSET

    @property
    def name(self) -> str:
        return self._name

    @property
    def ready(self) -> bool:
        return self._value is not _UNSET

    def __call__(self) -> T:
        if self._value is _UNSET:
            raise PlugNotReadyError(self._name)
        return self._value

    def __repr__(self) -> str:
        state = "ready" if self.ready else "pending"
        return f"<Plug {self._name!r} {state}>"

    def _resolve(self, value: T) -> None:
        self._value = value

    def _reset(self) -> None:
        self._value = _UNSET


def is_unresolved_plug(value: Any) -> bool:
    return isinstance(value, Plug) and not value.ready


class PlugProbeContext:
    """Restricted context used to check that an init function only returns a plug."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def plug(self) -> Plug[Any]:
        return Plug(self._name)

    def __getattr__(self, attribute: str) -> NoReturn:
        if attribute.startswith("__"):
            raise AttributeError(attribute)
        raise RestrictedContextError(self._name, attribute)
