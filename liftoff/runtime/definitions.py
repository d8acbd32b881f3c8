"""Registry entries: service definitions, level stages and plugin bindings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from .plug import Plug

if TYPE_CHECKING:
    from .context import ReadOnlyContext, ServiceContext
    from .graph import ServiceGraph

StartFunction = Callable[["ServiceContext"], Any]
StopFunction = Callable[[Any], Union[None, Awaitable[None]]]
PluginFactory = Callable[["ReadOnlyContext"], Union["ServiceGraph", Awaitable["ServiceGraph"]]]


@dataclass(slots=True)
class ServiceDefinition:
    name: str
    level: int
    start: StartFunction
    group: str | None = None
    stop: StopFunction | None = None
    instance: Any = None
    running: bool = False
    # indirection cell shared with consumers that asked for this service early
    plug: Plug[Any] | None = None
    # level at which the unresolved plug is published for an override
    plug_level: int | None = None

    def mark_started(self, value: Any) -> None:
        self.instance = value
        self.running = True

    def mark_stopped(self) -> None:
        self.instance = None
        self.running = False


@dataclass(slots=True)
class LevelStage:
    """One ``up()`` call: services declared together, started as a wave."""

    level: int
    group: str | None = None
    names: list[str] = field(default_factory=list)
    # overrides whose plug placeholder becomes visible at this level
    plugs: list[str] = field(default_factory=list)


@dataclass(slots=True, eq=False)
class PluginBinding:
    """Sub-graph merged into the host right after ``anchor`` level."""

    source: ServiceGraph | PluginFactory
    anchor: int
    push_config: bool = True
    graph: ServiceGraph | None = None
    merged: bool = False
    merged_names: list[str] = field(default_factory=list)
