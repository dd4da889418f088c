# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Cache layout and fixed filesystem locations used by eslint-relay."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

CACHE_ENV_VAR: Final[str] = "ESLINT_RELAY_CACHE_DIR"
DEFAULT_CACHE_DIR: Final[Path] = Path("~/.cache/eslint-relay")
BUNDLED_SUBDIR: Final[str] = "bundled"
NPM_SUBDIR: Final[str] = "npm"
BUNDLED_META_FILE: Final[str] = ".eslint-relay-meta.json"
BUNDLED_ENGINE_PACKAGE: Final[str] = "eslint@8"
ENGINE_PACKAGE_NAME: Final[str] = "eslint"
ENGINE_CLI_SCRIPT: Final[tuple[str, ...]] = ("bin", "eslint.js")
REPORTER_PATH: Final[Path] = Path(__file__).resolve().parent / "assets" / "reporter.js"


@dataclass(frozen=True, slots=True)
class CacheLayout:
    """Filesystem layout of the per-user cache holding the bundled engine."""

    cache_dir: Path

    @property
    def bundled_prefix(self) -> Path:
        """Return the npm ``--prefix`` the bundled engine is installed into."""

        return self.cache_dir / BUNDLED_SUBDIR

    @property
    def bundled_engine_dir(self) -> Path:
        return self.bundled_prefix / "node_modules" / ENGINE_PACKAGE_NAME

    @property
    def bundled_meta(self) -> Path:
        return self.bundled_prefix / BUNDLED_META_FILE

    @property
    def npm_cache_dir(self) -> Path:
        return self.cache_dir / NPM_SUBDIR

    def ensure_directories(self) -> None:
        for path in (self.bundled_prefix, self.npm_cache_dir):
            path.mkdir(parents=True, exist_ok=True)


def cache_layout(cache_dir: Path | None = None) -> CacheLayout:
    """Return the cache layout, honouring ``$ESLINT_RELAY_CACHE_DIR``.

    Args:
        cache_dir: Explicit cache directory; wins over the environment.

    Returns:
        CacheLayout: Layout rooted at the selected directory.
    """

    if cache_dir is None:
        raw = os.environ.get(CACHE_ENV_VAR)
        cache_dir = Path(raw) if raw else DEFAULT_CACHE_DIR
    return CacheLayout(cache_dir=cache_dir.expanduser())


__all__ = [
    "BUNDLED_ENGINE_PACKAGE",
    "ENGINE_CLI_SCRIPT",
    "ENGINE_PACKAGE_NAME",
    "REPORTER_PATH",
    "CacheLayout",
    "cache_layout",
]
