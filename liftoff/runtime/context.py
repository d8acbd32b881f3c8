"""Contexts passed into start functions and plugin factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from liftoff.env import EnvNamespace

from .accessor import ServiceAccessor
from .plug import Plug


@dataclass(frozen=True, slots=True)
class ServiceContext:
    """What a start function sees: started services, envs, a scoped log and plugs."""

    services: ServiceAccessor
    envs: EnvNamespace
    log: Callable[..., None]
    plug: Callable[[], Plug[Any]]


@dataclass(frozen=True, slots=True)
class ReadOnlyContext:
    """Started services and envs, handed to plugin factories and group consumers."""

    services: ServiceAccessor
    envs: EnvNamespace
