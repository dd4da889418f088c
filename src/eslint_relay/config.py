# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and layered TOML loading for eslint-relay."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from threading import Lock
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

PYPROJECT_FILE: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "eslint-relay"
PROJECT_CONFIG_FILE: Final[str] = ".eslint-relay.toml"
USER_CONFIG_PATH: Final[Path] = Path("~/.config/eslint-relay/config.toml")
DEFAULT_SCOPES: Final[tuple[str, ...]] = (
    "source.js",
    "source.jsx",
    "source.js.jsx",
    "source.babel",
    "source.js-semantic",
)

_ENV_VAR_PATTERN = re.compile(r"\$(\w+)|\$\{([^}]+)\}")


class EngineConfig(BaseModel):
    """Options controlling engine resolution and command-line construction.

    Field names are snake_case in Python; the job wire format uses the camelCase
    aliases (``useGlobalEslint``, ``eslintRulesDir`` and so on).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="forbid")

    use_global_eslint: bool = False
    global_node_path: str | None = None
    eslint_rules_dir: str | None = None
    eslintrc_path: str | None = None
    disable_eslint_ignore: bool = False
    disable_when_no_eslint_config: bool = True


class RelaySettings(BaseModel):
    """Complete settings snapshot: engine options plus session behaviour."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    engine: EngineConfig = Field(default_factory=EngineConfig)
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    fix_on_save: bool = False
    ignored_rules_when_modified: tuple[str, ...] = ()
    ignored_rules_when_fixing: tuple[str, ...] = ()
    ignore_fixable_rules_while_typing: bool = False
    show_rule: bool = True


def expand_env(value: str, env: Mapping[str, str] | None = None) -> str:
    """Expand ``$VAR`` and ``${VAR}`` references, leaving unknown names untouched.

    Args:
        value: Raw string possibly containing variable references.
        env: Environment mapping; defaults to :data:`os.environ`.

    Returns:
        str: String with known variables substituted.
    """

    source = os.environ if env is None else env

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1) or match.group(2)
        if key is None:
            return match.group(0)
        return source.get(key, match.group(0))

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _expand_env_value(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        return expand_env(value, env)
    if isinstance(value, Mapping):
        return {key: _expand_env_value(entry, env) for key, entry in value.items()}
    if isinstance(value, list):
        return [_expand_env_value(entry, env) for entry in value]
    return value


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _normalise_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Accept ``kebab-case`` keys from TOML alongside ``snake_case`` ones."""

    normalised: dict[str, Any] = {}
    for key, value in data.items():
        name = key.replace("-", "_")
        normalised[name] = _normalise_keys(value) if isinstance(value, Mapping) else value
    return normalised


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc


def _pyproject_section(path: Path) -> dict[str, Any]:
    data = _read_toml(path)
    tool_section = data.get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return {}
    section = tool_section.get(PYPROJECT_SECTION_KEY)
    if not isinstance(section, Mapping):
        return {}
    return dict(section)


def settings_sources(project_root: Path, *, user_config: Path | None = None) -> list[Path]:
    """Return the existing configuration files for ``project_root`` in precedence order."""

    candidates = [
        (user_config or USER_CONFIG_PATH).expanduser(),
        project_root / PYPROJECT_FILE,
        project_root / PROJECT_CONFIG_FILE,
    ]
    return [candidate for candidate in candidates if candidate.is_file()]


def load_settings(
    project_root: Path,
    *,
    user_config: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> RelaySettings:
    """Load settings by layering defaults, user config and project files.

    Args:
        project_root: Directory holding ``pyproject.toml`` / ``.eslint-relay.toml``.
        user_config: Optional override for the per-user configuration file.
        env: Environment used for ``$VAR`` expansion; defaults to :data:`os.environ`.

    Returns:
        RelaySettings: Validated settings snapshot.

    Raises:
        ConfigError: If a document is unreadable or fails validation.
    """

    environment = os.environ if env is None else env
    merged: dict[str, Any] = {}
    for path in settings_sources(project_root, user_config=user_config):
        fragment = _pyproject_section(path) if path.name == PYPROJECT_FILE else _read_toml(path)
        LOGGER.debug("loaded settings fragment from %s", path)
        merged = _deep_merge(merged, _normalise_keys(fragment))
    merged = _expand_env_value(merged, environment)
    try:
        return RelaySettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid eslint-relay settings: {exc}") from exc


SettingsCallback = Callable[[RelaySettings], None]


class ConfigProvider:
    """Hold the current settings snapshot and notify subscribers on change."""

    def __init__(self, settings: RelaySettings | None = None) -> None:
        self._settings = settings or RelaySettings()
        self._subscribers: list[SettingsCallback] = []
        self._lock = Lock()

    @classmethod
    def for_root(cls, project_root: Path, **kwargs: Any) -> ConfigProvider:
        """Build a provider seeded from the files found in ``project_root``."""

        return cls(load_settings(project_root, **kwargs))

    @property
    def settings(self) -> RelaySettings:
        return self._settings

    def job_config(self) -> EngineConfig:
        """Return the engine options embedded into each job."""

        return self._settings.engine

    def update(self, *, engine: Mapping[str, Any] | None = None, **changes: Any) -> RelaySettings:
        """Apply ``changes`` to the snapshot and notify every subscriber.

        Args:
            engine: Optional engine option overrides merged into the current engine config.
            **changes: Top-level :class:`RelaySettings` fields to replace.

        Returns:
            RelaySettings: The new snapshot.

        Raises:
            ConfigError: If the updated settings fail validation.
        """

        payload = self._settings.model_dump()
        if engine:
            payload["engine"] = {**payload["engine"], **engine}
        payload.update(changes)
        try:
            updated = RelaySettings.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"Invalid eslint-relay settings: {exc}") from exc
        with self._lock:
            self._settings = updated
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(updated)
        return updated

    def subscribe(self, callback: SettingsCallback) -> Callable[[], None]:
        """Register ``callback`` for change notifications.

        Returns:
            Callable[[], None]: Function removing the subscription when called.
        """

        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe


def rule_list(values: Iterable[str]) -> tuple[str, ...]:
    """Return ``values`` stripped of blanks and duplicates, preserving order."""

    seen: dict[str, None] = {}
    for value in values:
        cleaned = value.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


__all__ = [
    "ConfigProvider",
    "EngineConfig",
    "RelaySettings",
    "expand_env",
    "load_settings",
    "rule_list",
    "settings_sources",
]
