# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Upward filesystem searches for ``node_modules``, ESLint configs and ignore files."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from threading import Lock
from typing import Final, Protocol

ESLINT_CONFIG_FILES: Final[tuple[str, ...]] = (
    ".eslintrc.js",
    ".eslintrc.yaml",
    ".eslintrc.yml",
    ".eslintrc.json",
    ".eslintrc",
)
PACKAGE_MANIFEST: Final[str] = "package.json"
PACKAGE_CONFIG_KEY: Final[str] = "eslintConfig"
ESLINT_IGNORE_FILE: Final[str] = ".eslintignore"
NODE_MODULES_DIR: Final[str] = "node_modules"


class FileFinder(Protocol):
    """Locate the nearest ancestor entry matching one of several names."""

    def find(self, start_dir: Path, names: str | Iterable[str]) -> Path | None:
        """Return the closest match walking upward from ``start_dir``.

        Args:
            start_dir: Directory where the walk begins.
            names: Candidate entry name or names, checked in order per directory.

        Returns:
            Path | None: First existing candidate, or ``None`` when the walk
            reaches the filesystem root without a match.
        """
        ...


def _as_names(names: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(names, str):
        return (names,)
    return tuple(names)


def find_nearest(start_dir: Path, names: str | Iterable[str]) -> Path | None:
    """Walk upward from ``start_dir`` returning the first existing candidate.

    Args:
        start_dir: Directory where the walk begins.
        names: Candidate entry name or names, checked in order per directory.

    Returns:
        Path | None: Matching path, or ``None`` when nothing was found.
    """

    candidates = _as_names(names)
    current = Path(start_dir).expanduser().absolute()
    for directory in (current, *current.parents):
        for name in candidates:
            candidate = directory / name
            if candidate.exists():
                return candidate
    return None


class CachedFileFinder:
    """:class:`FileFinder` that memoises hits per ``(start_dir, names)`` pair.

    Misses are never stored, so files created after a failed lookup are found
    on the next call. A memoised hit is dropped once the file disappears.
    """

    def __init__(self) -> None:
        self._cache: dict[tuple[Path, tuple[str, ...]], Path] = {}
        self._lock = Lock()

    def find(self, start_dir: Path, names: str | Iterable[str]) -> Path | None:
        key = (Path(start_dir), _as_names(names))
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                if cached.exists():
                    return cached
                del self._cache[key]
        result = find_nearest(key[0], key[1])
        if result is not None:
            with self._lock:
                self._cache[key] = result
        return result

    def clear(self) -> None:
        """Forget every memoised lookup."""

        with self._lock:
            self._cache.clear()


def get_config_path(file_dir: Path, *, finder: FileFinder | None = None) -> Path | None:
    """Return the ESLint configuration governing files in ``file_dir``.

    Dedicated ``.eslintrc*`` files win; otherwise the nearest ``package.json``
    counts only when it declares an ``eslintConfig`` key.

    Args:
        file_dir: Directory containing the file being linted.
        finder: Optional lookup strategy; defaults to an uncached walk.

    Returns:
        Path | None: Configuration file path or ``None`` when the project has none.
    """

    lookup = finder.find if finder is not None else find_nearest
    config_file = lookup(file_dir, ESLINT_CONFIG_FILES)
    if config_file is not None:
        return config_file

    package_path = lookup(file_dir, PACKAGE_MANIFEST)
    if package_path is not None and _declares_eslint_config(package_path):
        return package_path
    return None


def _declares_eslint_config(package_path: Path) -> bool:
    try:
        payload = json.loads(package_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return False
    return isinstance(payload, dict) and bool(payload.get(PACKAGE_CONFIG_KEY))


def is_lint_disabled(
    file_dir: Path,
    *,
    disable_when_no_eslint_config: bool,
    finder: FileFinder | None = None,
) -> bool:
    """Return ``True`` when linting must be skipped for files in ``file_dir``."""

    if not disable_when_no_eslint_config:
        return False
    return get_config_path(file_dir, finder=finder) is None


def engine_working_directory(
    file_dir: Path,
    *,
    disable_eslint_ignore: bool,
    finder: FileFinder | None = None,
) -> Path:
    """Return the directory ESLint should run from for files in ``file_dir``.

    ESLint reads ``.eslintignore`` relative to its working directory, so the
    engine runs beside the nearest ignore file unless ignore handling is off.
    """

    if disable_eslint_ignore:
        return Path(file_dir)
    lookup = finder.find if finder is not None else find_nearest
    ignore_file = lookup(file_dir, ESLINT_IGNORE_FILE)
    if ignore_file is None:
        return Path(file_dir)
    return ignore_file.parent


__all__ = [
    "ESLINT_CONFIG_FILES",
    "ESLINT_IGNORE_FILE",
    "NODE_MODULES_DIR",
    "CachedFileFinder",
    "FileFinder",
    "engine_working_directory",
    "find_nearest",
    "get_config_path",
    "is_lint_disabled",
]
