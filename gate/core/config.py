"""
Gate Configuration
==================

Layered configuration with dot-notation access.

Loading priority (highest to lowest):
1. Runtime overrides (``config.set``)
2. Environment variables (GATE_*)
3. Sources added with ``add_source``
4. Built-in defaults

Environment variables use a double underscore between key segments so
that segment names may contain single underscores:

    GATE_ROUTER__DUPLICATE_ROUTES=reject   -> router.duplicate_routes
    GATE_ROUTER__NOT_FOUND__STATUS=410     -> router.not_found.status
    GATE_APP__DEBUG=true                   -> app.debug

Example:
    config = Config.from_env()
    config.get("router.not_found.body")   # "Oops!"
    config.get_int("router.not_found.status", 404)
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, TypeVar, Union

import orjson

from gate.core.exceptions import ConfigError
from gate.utils.logger import get_logger

logger = get_logger("gate.config")

T = TypeVar("T")

ENV_PREFIX = "GATE_"

DUPLICATE_ROUTE_POLICIES = ("first", "reject")

DEFAULTS: Dict[str, Any] = {
    "app": {
        "debug": False,
    },
    "router": {
        "duplicate_routes": "first",
        "not_found": {
            "status": 404,
            "body": "Oops!",
        },
    },
    "log": {
        "level": "INFO",
        "format": "text",
    },
}


@dataclass
class ConfigSource:
    """A named configuration layer."""
    name: str
    data: Dict[str, Any]
    priority: int = 0


class Config:
    """
    Configuration container.

    Example:
        config = Config({"router": {"duplicate_routes": "reject"}})
        config.get("router.duplicate_routes")  # "reject"
        config.get("app.debug")                # False (default)
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._sources: List[ConfigSource] = [
            ConfigSource(name="defaults", data=copy.deepcopy(DEFAULTS), priority=0),
        ]
        self._merged: Dict[str, Any] = {}
        self._dirty = True

        if data:
            self.add_source("init", dict(data), priority=10)

    @classmethod
    def from_env(
        cls,
        data: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """Create a config with GATE_* environment overrides applied."""
        config = cls(data)
        config.load_env(environ)
        return config

    def load_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Load overrides from GATE_* environment variables."""
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for key, value in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = key[len(ENV_PREFIX):].lower().split("__")

            if not _is_setting_path(path):
                logger.warning("Ignoring environment variable that is not a setting", key=key)
                continue

            current = overrides
            for part in path[:-1]:
                current = current.setdefault(part, {})
            # String settings keep the raw value
            if isinstance(_default_at(path), str):
                current[path[-1]] = value
            else:
                current[path[-1]] = _parse_env_value(value)

        if overrides:
            self.add_source("env", overrides, priority=100)

    def add_source(self, name: str, data: Dict[str, Any], priority: int = 50) -> None:
        """Add a configuration layer."""
        self._sources.append(ConfigSource(name=name, data=data, priority=priority))
        self._dirty = True

    def _merge(self) -> None:
        if not self._dirty:
            return

        merged: Dict[str, Any] = {}
        for source in sorted(self._sources, key=lambda s: s.priority):
            _deep_merge(merged, source.data)

        self._merged = merged
        self._dirty = False

    def get(self, key: str, default: T = None) -> Union[Any, T]:
        """Get a value by dot-notation key."""
        self._merge()

        current: Any = self._merged
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1", "on")
        return bool(value)

    def get_choice(self, key: str, choices: tuple) -> str:
        """Get a value that must be one of ``choices``."""
        value = self.get(key)
        if value not in choices:
            raise ConfigError(f"{key} must be one of {', '.join(choices)}, got {value!r}")
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a runtime override (highest priority)."""
        runtime = next((s for s in self._sources if s.name == "runtime"), None)
        if runtime is None:
            runtime = ConfigSource(name="runtime", data={}, priority=1000)
            self._sources.append(runtime)

        parts = key.split(".")
        current = runtime.data
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value
        self._dirty = True

    def section(self, prefix: str) -> Dict[str, Any]:
        value = self.get(prefix)
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def all(self) -> Dict[str, Any]:
        self._merge()
        return copy.deepcopy(self._merged)

    @property
    def duplicate_routes(self) -> str:
        return self.get_choice("router.duplicate_routes", DUPLICATE_ROUTE_POLICIES)

    @property
    def debug(self) -> bool:
        return self.get_bool("app.debug")

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> None:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)


def _default_at(path: List[str]) -> Any:
    """The built-in default at ``path``, or None when there is none."""
    current: Any = DEFAULTS
    for part in path:
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _is_setting_path(path: List[str]) -> bool:
    """
    Whether an environment key may be applied at ``path``.

    A value may not replace a built-in section, nest below a built-in
    scalar, or sit at the top level outside any section.
    """
    current: Any = DEFAULTS
    for part in path:
        if not isinstance(current, dict):
            return False
        if part not in current:
            return len(path) > 1
        current = current[part]
    return not isinstance(current, dict)


def _parse_env_value(value: str) -> Any:
    """Parse an environment string to bool, int, float or JSON when possible."""
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if value.startswith(("{", "[")):
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            pass

    return value
