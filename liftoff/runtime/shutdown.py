"""Launch and timeout-bounded shutdown orchestration for a service graph."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from .config import DEFAULT_GRACEFUL_SHUTDOWN_TIMEOUT_MS

if TYPE_CHECKING:
    from .graph import ServiceGraph

logger = logging.getLogger(__name__)

ProcessTerminator = Callable[[int], None]

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


def terminate_process(status: int) -> None:
    """Flush log handlers and end the process without waiting on pending work."""
    logging.shutdown()
    os._exit(status)


class ShutdownPhase(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(slots=True)
class ShutdownState:
    phase: ShutdownPhase = ShutdownPhase.IDLE
    reason: str | None = None
    last_error: str | None = None
    force_exited: bool = False
    exit_status: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "reason": self.reason,
            "last_error": self.last_error,
            "force_exited": self.force_exited,
            "exit_status": self.exit_status,
        }


class ShutdownController:
    """Wraps ``ServiceGraph.start``/``stop`` with signals, a deadline and forced exit."""

    def __init__(self, graph: ServiceGraph, terminator: ProcessTerminator | None = None) -> None:
        self._graph = graph
        self._terminator = terminator or terminate_process
        self._state = ShutdownState()
        self._signal_loop: asyncio.AbstractEventLoop | None = None
        self._signals: set[signal.Signals] = set()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def force_exited(self) -> bool:
        return self._state.force_exited

    @property
    def exit_status(self) -> int | None:
        return self._state.exit_status

    async def launch(self) -> None:
        self._grace_period_ms()
        self._state.phase = ShutdownPhase.STARTING
        try:
            await self._graph.start()
        except Exception as exc:  # noqa: BLE001
            self._state.last_error = str(exc)
            logger.error(
                "Failed to start: %s",
                exc,
                exc_info=exc,
                extra={"event": "graph_start_failed"},
            )
            await self.shutdown("failed start cleanup")
            return
        self._state.phase = ShutdownPhase.RUNNING
        self._subscribe_signals(asyncio.get_running_loop())

    async def shutdown(self, reason: str | None = None) -> None:
        timeout_ms = self._grace_period_ms()
        self._state.phase = ShutdownPhase.STOPPING
        self._state.reason = reason or "shutdown"

        stop_task = asyncio.ensure_future(self._graph.stop(f"{self._state.reason}, timeout: {timeout_ms}ms"))
        done, _ = await asyncio.wait({stop_task}, timeout=timeout_ms / 1000)
        if not done:
            # stop functions still pending are abandoned, not cancelled
            self._pending.add(stop_task)
            stop_task.add_done_callback(self._forget)
            self._state.phase = ShutdownPhase.TIMED_OUT
            logger.error(
                "Reached shutdown timeout %dms, killing...",
                timeout_ms,
                extra={"event": "shutdown_timeout", "timeout_ms": timeout_ms},
            )
            self._terminate(1)
            return

        error = stop_task.exception()
        if error is not None:
            self._state.phase = ShutdownPhase.FAILED
            self._state.last_error = str(error)
            logger.error(
                "Shutdown incomplete, killing... Reason: %s",
                error,
                exc_info=error,
                extra={"event": "shutdown_failed"},
            )
            self._terminate(1)
            return

        self._state.phase = ShutdownPhase.STOPPED
        if self._graph.config.force_exit_after_shutdown:
            self._terminate(0)

    def _grace_period_ms(self) -> int:
        timeout_ms = self._graph.config.graceful_shutdown_timeout_ms
        if timeout_ms is None:
            logger.warning(
                "graceful_shutdown_timeout_ms config option not set, fallback to 60 sec",
                extra={"event": "shutdown_timeout_defaulted"},
            )
            timeout_ms = DEFAULT_GRACEFUL_SHUTDOWN_TIMEOUT_MS
            self._graph.configure(graceful_shutdown_timeout_ms=timeout_ms)
        return timeout_ms

    def _subscribe_signals(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._signal_loop is not loop:
            # handlers of a previous loop went away with it
            self._signal_loop = loop
            self._signals.clear()
        for sig in SHUTDOWN_SIGNALS:
            if sig in self._signals:
                continue
            try:
                loop.add_signal_handler(sig, self._on_signal, loop, sig)
            except (NotImplementedError, RuntimeError, ValueError):
                logger.warning(
                    "Can't subscribe to %s, shutdown on this signal is disabled",
                    sig.name,
                    extra={"event": "signal_unavailable", "signal": sig.name},
                )
                continue
            self._signals.add(sig)

    def _on_signal(self, loop: asyncio.AbstractEventLoop, sig: signal.Signals) -> None:
        # each signal triggers shutdown at most once per launch
        loop.remove_signal_handler(sig)
        self._signals.discard(sig)
        if self._graph.config.verbose:
            logger.info("Signal %s received", sig.name, extra={"event": "signal_received", "signal": sig.name})
        task = loop.create_task(self.shutdown(sig.name))
        self._pending.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Abandoned shutdown work failed: %s",
                error,
                exc_info=error,
                extra={"event": "abandoned_stop_failed"},
            )

    def _terminate(self, status: int) -> None:
        self._state.force_exited = True
        self._state.exit_status = status
        self._terminator(status)
