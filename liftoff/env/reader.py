"""Typed, validated readers for process environment variables."""

from __future__ import annotations

import builtins
import ipaddress
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Pattern
from urllib.parse import SplitResult, urlsplit

STRICT_BOOLEANS: dict[str, bool] = {
    "true": True,
    "false": False,
}
LENIENT_BOOLEANS: dict[str, bool] = {
    **STRICT_BOOLEANS,
    "1": True,
    "y": True,
    "yes": True,
    "0": False,
    "n": False,
    "no": False,
}


class EnvVarError(ValueError):
    """Raised when an environment variable is missing or malformed."""

    def __init__(self, name: str, problem: str):
        super().__init__(f'Env var "{name}" {problem}')
        self.name = name


class EnvVar:
    """Reader bound to one environment variable name.

    Every accessor re-reads the environment, so values changed after the
    reader was created are observed.
    """

    def __init__(self, name: str, environ: Mapping[str, str] | None = None) -> None:
        self._name = name
        self._environ = environ

    @property
    def name(self) -> str:
        return self._name

    def __str__(self) -> str:
        return self.string()

    def __repr__(self) -> str:
        return f"EnvVar({self._name!r})"

    def raw(self) -> str | None:
        environ = os.environ if self._environ is None else self._environ
        return environ.get(self._name)

    def string(self, default: str | None = None, *, non_empty: bool = True) -> str:
        value = self.raw()
        if value is None:
            value = default
        if value is None:
            raise EnvVarError(self._name, "is not set")
        if non_empty and value == "":
            raise EnvVarError(self._name, "is empty")
        return value

    s = string

    def match(self, pattern: str | Pattern[str], default: str | None = None) -> str:
        value = self.string(default)
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        found = compiled.search(value)
        if found is None:
            raise EnvVarError(self._name, f"doesn't match expected format {compiled.pattern}")
        return found.group(0)

    def path(
        self,
        default: str | None = None,
        *,
        file: builtins.bool | None = None,
        exist: builtins.bool = False,
    ) -> str:
        value = self.string(default)
        if not exist and file is None:
            return value

        target = Path(value)
        if not target.exists():
            if exist:
                raise EnvVarError(self._name, "path doesn't exist")
            return value
        if file is True and not target.is_file():
            raise EnvVarError(self._name, "is not a file path")
        if file is False and not target.is_dir():
            raise EnvVarError(self._name, "is not a directory path")
        return value

    def url(self, default: str | None = None) -> SplitResult:
        value = self.string(default)
        try:
            parsed = urlsplit(value)
        except ValueError as exc:
            raise EnvVarError(self._name, "is not a valid URL") from exc
        if not parsed.scheme or not parsed.netloc:
            raise EnvVarError(self._name, "is not a valid URL")
        return parsed

    def ip(self, default: str | None = None) -> str:
        return self._ip_address(default, version=None, label="IP address")

    def ipv4(self, default: str | None = None) -> str:
        return self._ip_address(default, version=4, label="IPv4 address")

    def ipv6(self, default: str | None = None) -> str:
        return self._ip_address(default, version=6, label="IPv6 address")

    def number(
        self,
        default: float | None = None,
        *,
        min: float | None = None,
        max: float | None = None,
    ) -> float:
        value = self.raw()
        if value is None and default is None:
            raise EnvVarError(self._name, "is not set")
        try:
            number = float(value) if value is not None else float(default)
        except ValueError as exc:
            raise EnvVarError(self._name, "is not a valid number") from exc
        if number != number:
            raise EnvVarError(self._name, "is not a valid number")
        if min is not None and number < min:
            raise EnvVarError(self._name, f"value is too small (<{_format_bound(min)})")
        if max is not None and number > max:
            raise EnvVarError(self._name, f"value is too large (>{_format_bound(max)})")
        return number

    def int(
        self,
        default: builtins.int | None = None,
        *,
        min: float | None = None,
        max: float | None = None,
        strict: builtins.bool = True,
    ) -> builtins.int:
        number = self.number(default, min=min, max=max)
        if number in (float("inf"), float("-inf")):
            raise EnvVarError(self._name, "is not a valid integer")
        integer = builtins.int(number)
        if strict and integer != number:
            raise EnvVarError(self._name, "is not a valid integer")
        return integer

    def port(
        self,
        default: builtins.int | None = None,
        *,
        min: float | None = None,
        max: float | None = None,
        strict: builtins.bool = True,
    ) -> builtins.int:
        value = self.int(default, min=min, max=max, strict=strict)
        if value < 0 or value > 65535:
            raise EnvVarError(self._name, "is not a valid port number")
        return value

    def bool(
        self,
        default: builtins.bool | None = None,
        *,
        strict: builtins.bool = False,
        mapping: Mapping[str, builtins.bool] | None = None,
    ) -> builtins.bool:
        value = self.raw()
        if value is None:
            if default is None:
                raise EnvVarError(self._name, "is not set")
            return default
        table = mapping if mapping is not None else (STRICT_BOOLEANS if strict else LENIENT_BOOLEANS)
        parsed = table.get(value.lower())
        if parsed is None:
            raise EnvVarError(self._name, "is not a valid boolean")
        return parsed

    def _ip_address(self, default: str | None, *, version: builtins.int | None, label: str) -> str:
        value = self.string(default)
        try:
            address = ipaddress.ip_address(value)
        except ValueError as exc:
            raise EnvVarError(self._name, f"is not a valid {label}") from exc
        if version is not None and address.version != version:
            raise EnvVarError(self._name, f"is not a valid {label}")
        return value


class EnvNamespace:
    """Attribute/item style factory for :class:`EnvVar` readers."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def __getattr__(self, name: str) -> EnvVar:
        if name.startswith("__"):
            raise AttributeError(name)
        return EnvVar(name, self._environ)

    def __getitem__(self, name: str) -> EnvVar:
        return EnvVar(name, self._environ)


def _format_bound(bound: float) -> str:
    if isinstance(bound, float) and bound.is_integer():
        return str(builtins.int(bound))
    return str(bound)
