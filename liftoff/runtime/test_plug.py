from __future__ import annotations

import asyncio
import logging

import pytest

from liftoff.runtime.accessor import LookupStatus
from liftoff.runtime.config import GraphConfig
from liftoff.runtime.errors import (
    InvalidPlugOverrideError,
    PlugNotReadyError,
    RestrictedContextError,
    UnresolvedPlugError,
)
from liftoff.runtime.graph import ServiceGraph
from liftoff.runtime.plug import Plug, PlugProbeContext, is_unresolved_plug


class FakeLogger:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def write(self, line: str) -> None:
        self.lines.append(line)


class FakeConsumer:
    def __init__(self, logger: Plug[FakeLogger]) -> None:
        self._logger = logger

    def handle(self, message: str) -> None:
        self._logger().write(message)


def test_plug_raises_until_resolved() -> None:
    plug: Plug[str] = Plug("logger")

    assert plug.ready is False
    assert is_unresolved_plug(plug) is True
    with pytest.raises(PlugNotReadyError, match="uninitialized plug for service 'logger'"):
        plug()

    plug._resolve("real")
    assert plug() == "real"
    assert is_unresolved_plug(plug) is False

    plug._reset()
    assert plug.ready is False


def test_probe_context_only_offers_plug() -> None:
    probe = PlugProbeContext("logger")

    assert isinstance(probe.plug(), Plug)
    with pytest.raises(RestrictedContextError):
        probe.services


def test_consumer_holding_plug_observes_override() -> None:
    seen: dict[str, object] = {}

    def start_consumer(ctx) -> FakeConsumer:
        seen["status"] = ctx.services.lookup("logger").status
        plug = ctx.services.plug("logger")
        with pytest.raises(PlugNotReadyError):
            plug()
        return FakeConsumer(plug)

    graph = (
        ServiceGraph(GraphConfig(verbose=False))
        .up({"logger": lambda ctx: ctx.plug()})
        .up({"consumer": start_consumer})
        .up({"logger": lambda _: FakeLogger()})
    )

    asyncio.run(graph.start())

    assert seen["status"] is LookupStatus.UNRESOLVED_PLUG
    graph.services.consumer.handle("hello")
    assert graph.services.logger.lines == ["hello"]
    assert graph.names() == ["consumer", "logger"]


def test_plug_is_reset_after_stop_and_resolved_on_restart() -> None:
    graph = (
        ServiceGraph(GraphConfig(verbose=False))
        .up({"logger": lambda ctx: ctx.plug()})
        .up({"consumer": lambda ctx: FakeConsumer(ctx.services.plug("logger"))})
        .up({"logger": lambda _: FakeLogger()})
    )

    asyncio.run(graph.start())
    plug = graph.services.plug("logger")
    first = plug()

    asyncio.run(graph.stop())
    assert plug.ready is False
    assert graph.services.lookup("logger").status is LookupStatus.NOT_STARTED

    asyncio.run(graph.start())
    assert graph.services.plug("logger") is plug
    assert plug() is not first
    assert plug() is graph.services.logger


def test_plug_can_only_be_overridden_once() -> None:
    graph = (
        ServiceGraph(GraphConfig(verbose=False))
        .up({"logger": lambda ctx: ctx.plug()})
        .up({"logger": lambda _: FakeLogger()})
    )

    with pytest.raises(InvalidPlugOverrideError, match="didn't return a plug"):
        graph.up({"logger": lambda _: FakeLogger()})


def test_override_returning_plug_cannot_be_overridden_again() -> None:
    graph = (
        ServiceGraph(GraphConfig(verbose=False))
        .up({"logger": lambda ctx: ctx.plug()})
        .up({"logger": lambda ctx: ctx.plug()})
    )

    with pytest.raises(InvalidPlugOverrideError, match="Can't override service 'logger': existing init function was already overridden"):
        graph.up({"logger": lambda _: FakeLogger()})

    assert graph.level == 1
    assert graph.names() == ["logger"]


def test_unresolved_plug_without_override_warns(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="liftoff")
    graph = ServiceGraph().up({"later": lambda ctx: ctx.plug()})

    asyncio.run(graph.start())

    messages = [record.getMessage() for record in caplog.records]
    assert "[later] Got a plug instead of the service" in messages
    assert "[later] Ready" not in messages
    with pytest.raises(UnresolvedPlugError, match="it's a plug"):
        graph.services.later
