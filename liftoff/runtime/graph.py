"""Leveled service registry, lifecycle engine and plugin composition."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Awaitable, Callable

from liftoff.env import EnvNamespace, envs

from .accessor import ServiceAccessor
from .config import GraphConfig
from .context import ReadOnlyContext, ServiceContext
from .definitions import (
    LevelStage,
    PluginBinding,
    PluginFactory,
    ServiceDefinition,
    StartFunction,
    StopFunction,
)
from .errors import (
    DuplicateGroupError,
    InvalidPlugOverrideError,
    PluginConflictError,
    PluginError,
    UnknownGroupError,
    UnknownServiceError,
)
from .plug import Plug, PlugProbeContext, is_unresolved_plug
from .shutdown import ProcessTerminator, ShutdownController, ShutdownState

logger = logging.getLogger(__name__)


class ServiceGraph:
    """Builds and orchestrates leveled service startup/shutdown.

    Each ``up()`` call declares one level. Levels start in ascending order and
    stop in reverse; services inside a level start together (or one by one
    when ``parallel_start_groups`` is off). ``use()`` composes another graph
    right after the highest level declared so far.

    Example:
        graph = (
            ServiceGraph()
            .up({"config": lambda ctx: load_config()})
            .up({"db": lambda ctx: connect(ctx.services.config)})
            .down({"db": lambda db: db.close()})
        )
        await graph.launch()
    """

    def __init__(
        self,
        config: GraphConfig | None = None,
        *,
        env: EnvNamespace | None = None,
        terminator: ProcessTerminator | None = None,
    ) -> None:
        self._config = config or GraphConfig()
        self._env = env or envs
        self._definitions: dict[str, ServiceDefinition] = {}
        self._stages: list[LevelStage | PluginBinding] = []
        self._groups: dict[str, int] = {}
        self._plugin_names: dict[str, PluginBinding] = {}
        self._next_level = 0
        self._shutdown = ShutdownController(self, terminator=terminator)
        self.services = ServiceAccessor(self._definitions)

    @property
    def config(self) -> GraphConfig:
        return self._config

    @property
    def level(self) -> int:
        """Highest level declared so far, ``-1`` for an empty graph."""
        return self._next_level - 1

    @property
    def lifecycle_state(self) -> ShutdownState:
        return self._shutdown.state

    @property
    def force_exited(self) -> bool:
        return self._shutdown.force_exited

    @property
    def exit_status(self) -> int | None:
        return self._shutdown.exit_status

    def names(self) -> list[str]:
        return list(self._definitions)

    def configure(self, **options: Any) -> ServiceGraph:
        self._config = self._config.merged(**options)
        return self

    # -- registration -----------------------------------------------------

    def up(self, definitions: Mapping[str, StartFunction], group: str | None = None) -> ServiceGraph:
        if group is not None and group in self._groups:
            raise DuplicateGroupError(group)

        # validate every override before touching the registry
        plugs = {
            name: self._probe_plug(self._definitions[name])
            for name in definitions
            if name in self._definitions
        }

        level = self._next_level
        stage = LevelStage(level=level, group=group)
        for name, start in definitions.items():
            definition = ServiceDefinition(name=name, level=level, start=start, group=group)
            previous = self._definitions.pop(name, None)
            if previous is not None:
                self._detach(previous)
                definition.plug = plugs[name]
                definition.plug_level = previous.plug_level
                if definition.plug_level is None:
                    definition.plug_level = previous.level
                    self._level_stage(previous.level).plugs.append(name)
                logger.debug(
                    "[%s] Plug from level %d overridden at level %d",
                    name,
                    previous.level,
                    level,
                    extra={"event": "plug_overridden", "service": name},
                )
            self._definitions[name] = definition
            stage.names.append(name)

        self._stages.append(stage)
        if group is not None:
            self._groups[group] = level
        self._next_level += 1
        return self

    def down(self, destroyers: Mapping[str, StopFunction]) -> ServiceGraph:
        for name in destroyers:
            if name not in self._definitions:
                raise UnknownServiceError(name, f"Trying to add destroyer to unknown service {name}")
        for name, stop in destroyers.items():
            self._definitions[name].stop = stop
        return self

    def use(self, source: ServiceGraph | PluginFactory, push_config: bool = True) -> ServiceGraph:
        if not isinstance(source, ServiceGraph) and not callable(source):
            raise PluginError(f"Expected a ServiceGraph or a factory, got {type(source).__name__}")
        self._stages.append(PluginBinding(source=source, anchor=self.level, push_config=push_config))
        return self

    def context_for(self, group: str) -> ReadOnlyContext:
        """Context limited to the services declared up to ``group``'s level."""

        if group not in self._groups:
            raise UnknownGroupError(group)
        limit = self._groups[group]

        def visible(definition: ServiceDefinition) -> bool:
            binding = self._plugin_names.get(definition.name)
            if binding is not None:
                return binding.anchor < limit
            if definition.plug_level is not None and definition.plug_level <= limit:
                return True
            return definition.level <= limit

        return ReadOnlyContext(
            services=ServiceAccessor(self._definitions, visible=visible, scope=group),
            envs=self._env,
        )

    def _probe_plug(self, existing: ServiceDefinition) -> Plug[Any]:
        name = existing.name
        if existing.plug_level is not None:
            raise InvalidPlugOverrideError(name, "was already overridden")
        try:
            produced = existing.start(PlugProbeContext(name))
        except Exception as exc:
            raise InvalidPlugOverrideError(name, f"raised an error: {exc}") from exc
        if inspect.isawaitable(produced):
            if inspect.iscoroutine(produced):
                produced.close()
            raise InvalidPlugOverrideError(name, "is async")
        if not isinstance(produced, Plug):
            raise InvalidPlugOverrideError(name, "didn't return a plug")
        return produced

    def _detach(self, definition: ServiceDefinition) -> None:
        stage = self._level_stage(definition.level)
        stage.names.remove(definition.name)

    def _level_stage(self, level: int) -> LevelStage:
        for stage in self._stages:
            if isinstance(stage, LevelStage) and stage.level == level:
                return stage
        raise LookupError(f"level {level} is not declared")

    # -- start ------------------------------------------------------------

    async def start(self) -> ServiceGraph:
        self._info("Starting...", event="graph_starting")
        await self._start_stages()
        return self

    async def only(self, name: str) -> Any:
        """Start ``name`` plus every level below it, then return the service."""

        definition = self._definitions.get(name)
        if definition is None or self._needs_start(definition):
            self._info(
                "Starting only service '%s' and dependencies...",
                name,
                event="graph_starting_only",
                service=name,
            )
            # names contributed by plugins are not known before the merge
            bounded = definition is not None and name not in self._plugin_names
            await self._start_stages(target=definition if bounded else None)
        return self.services.get(name)

    async def _start_stages(self, target: ServiceDefinition | None = None) -> None:
        bound = target.level if target is not None else None
        for stage in list(self._stages):
            if isinstance(stage, PluginBinding):
                if bound is None or stage.anchor < bound:
                    await self._merge(stage)
                continue
            if bound is not None and stage.level > bound:
                break
            self._publish_plugs(stage)
            names = [target.name] if target is not None and stage.level == bound else stage.names
            await self._run_level(
                [self._definitions[name] for name in names],
                self._start_one,
                parallel=self._config.parallel_start_groups,
            )

    def _publish_plugs(self, stage: LevelStage) -> None:
        for name in stage.plugs:
            definition = self._definitions.get(name)
            if definition is None or definition.running or definition.plug is None:
                continue
            definition.mark_started(definition.plug)
            logger.debug(
                "[%s] Plugged until level %d",
                name,
                definition.level,
                extra={"event": "plug_published", "service": name},
            )

    async def _start_one(self, definition: ServiceDefinition) -> None:
        name = definition.name
        if not self._needs_start(definition):
            self._info("[%s] Already initialized", name, event="service_already_initialized", service=name)
            return

        self._info("[%s] Initializing...", name, event="service_initializing", service=name)
        value = definition.start(self._service_context(definition))
        if inspect.isawaitable(value):
            value = await value
        definition.mark_started(value)
        if definition.plug_level is not None and definition.plug is not None:
            definition.plug._resolve(value)

        if is_unresolved_plug(value):
            logger.warning(
                "[%s] Got a plug instead of the service",
                name,
                extra={"event": "service_unresolved_plug", "service": name},
            )
        else:
            self._info("[%s] Ready", name, event="service_ready", service=name)

    def _needs_start(self, definition: ServiceDefinition) -> bool:
        if not definition.running:
            return True
        # an override is only plugged until its own level starts it
        return definition.plug_level is not None and definition.instance is definition.plug

    def _service_context(self, definition: ServiceDefinition) -> ServiceContext:
        name = definition.name

        def log(*items: Any) -> None:
            self._info("[%s] %s", name, " ".join(str(item) for item in items), event="service_log", service=name)

        def plug() -> Plug[Any]:
            if definition.plug is None:
                definition.plug = Plug(name)
            return definition.plug

        return ServiceContext(services=self.services, envs=self._env, log=log, plug=plug)

    # -- plugins ----------------------------------------------------------

    async def _merge(self, binding: PluginBinding) -> None:
        if binding.merged:
            return

        plugin = binding.graph or await self._materialize(binding)
        if binding.push_config:
            plugin.configure(**self._config.as_options())
        for name in plugin.names():
            if name in self._definitions:
                raise PluginConflictError(name)

        binding.graph = plugin
        binding.merged = True
        await plugin.start()

        # nested plugins only surface their names once started
        for name in plugin.names():
            if name in self._definitions:
                raise PluginConflictError(name)
            self._definitions[name] = plugin._definitions[name]
            self._plugin_names[name] = binding
            binding.merged_names.append(name)

    async def _materialize(self, binding: PluginBinding) -> ServiceGraph:
        source = binding.source
        if isinstance(source, ServiceGraph):
            return source
        produced = source(ReadOnlyContext(services=self.services, envs=self._env))
        if inspect.isawaitable(produced):
            produced = await produced
        if not isinstance(produced, ServiceGraph):
            raise PluginError(f"Plugin factory returned {type(produced).__name__}, expected ServiceGraph")
        return produced

    async def _unmerge(self, binding: PluginBinding, reason: str | None) -> None:
        if not binding.merged or binding.graph is None:
            return
        await binding.graph.stop(reason)
        for name in binding.merged_names:
            self._definitions.pop(name, None)
            self._plugin_names.pop(name, None)
        binding.merged_names.clear()
        binding.merged = False
        if not isinstance(binding.source, ServiceGraph):
            # factories build a fresh sub-graph next cycle
            binding.graph = None

    # -- stop -------------------------------------------------------------

    async def stop(self, reason: str | None = None) -> None:
        self._info("Stopping (%s)...", reason or "unspecified reason", event="graph_stopping")
        for stage in reversed(self._stages):
            if isinstance(stage, PluginBinding):
                await self._unmerge(stage, reason)
                continue
            await self._run_level(
                [self._definitions[name] for name in reversed(stage.names)],
                self._stop_one,
                parallel=self._config.parallel_stop_groups,
            )
            self._reset_plugs(stage)

    async def _stop_one(self, definition: ServiceDefinition) -> None:
        if not definition.running:
            return
        if definition.stop is None or is_unresolved_plug(definition.instance):
            definition.mark_stopped()
            return

        name = definition.name
        self._info("[%s] Destroying...", name, event="service_destroying", service=name)
        result = definition.stop(definition.instance)
        if inspect.isawaitable(result):
            await result
        definition.mark_stopped()
        self._info("[%s] Destroyed", name, event="service_destroyed", service=name)

    def _reset_plugs(self, stage: LevelStage) -> None:
        for name in stage.plugs:
            definition = self._definitions.get(name)
            if definition is None:
                continue
            if definition.plug is not None:
                definition.plug._reset()
            if definition.running and definition.instance is definition.plug:
                definition.mark_stopped()

    # -- process lifecycle ------------------------------------------------

    async def launch(self) -> ServiceGraph:
        """Start, then shut down on SIGINT/SIGTERM; a failed start is cleaned up, not raised."""
        await self._shutdown.launch()
        return self

    async def shutdown(self, reason: str | None = None) -> None:
        """Stop within the grace period, terminating the process on timeout or failure."""
        await self._shutdown.shutdown(reason)

    # -- helpers ----------------------------------------------------------

    async def _run_level(
        self,
        definitions: Iterable[ServiceDefinition],
        action: Callable[[ServiceDefinition], Awaitable[None]],
        *,
        parallel: bool,
    ) -> None:
        if not parallel:
            for definition in definitions:
                await action(definition)
            return
        results = await asyncio.gather(*(action(definition) for definition in definitions), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

    def _info(self, message: str, *args: Any, event: str, service: str | None = None) -> None:
        if self._config.verbose:
            logger.info(message, *args, extra={"event": event, "service": service})
