# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Provision the bundled ESLint copy used when a project has none."""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from subprocess import CompletedProcess
from typing import Any

from .constants import BUNDLED_ENGINE_PACKAGE, ENGINE_PACKAGE_NAME, CacheLayout, cache_layout
from .process_utils import SubprocessExecutionError, run_command

InstallRunner = Callable[..., CompletedProcess[str]]


@dataclass(frozen=True, slots=True)
class BundledInstall:
    """Outcome of provisioning the bundled engine."""

    engine_dir: Path
    requirement: str
    version: str | None
    reused: bool


def _npm_env(layout: CacheLayout) -> dict[str, str]:
    env = os.environ.copy()
    env.setdefault("NPM_CONFIG_CACHE", str(layout.npm_cache_dir))
    env.setdefault("npm_config_cache", str(layout.npm_cache_dir))
    env.setdefault("NPM_CONFIG_PREFIX", str(layout.bundled_prefix))
    env.setdefault("npm_config_prefix", str(layout.bundled_prefix))
    return env


def ensure_bundled_engine(
    *,
    requirement: str = BUNDLED_ENGINE_PACKAGE,
    layout: CacheLayout | None = None,
    runner: InstallRunner = run_command,
    force: bool = False,
) -> BundledInstall:
    """Install ``requirement`` into the bundled prefix unless it is already there.

    Args:
        requirement: npm package spec to install.
        layout: Cache layout; defaults to :func:`cache_layout`.
        runner: Command runner compatible with :func:`run_command`.
        force: Reinstall even when the metadata matches.

    Returns:
        BundledInstall: Where the engine lives and whether the cache was reused.
    """

    paths = layout or cache_layout()
    meta = _read_meta(paths.bundled_meta)
    if not force and meta.get("requirement") == requirement and paths.bundled_engine_dir.is_dir():
        return BundledInstall(
            engine_dir=paths.bundled_engine_dir,
            requirement=requirement,
            version=meta.get("version"),
            reused=True,
        )

    paths.ensure_directories()
    env = _npm_env(paths)
    runner(
        ["npm", "install", "--prefix", str(paths.bundled_prefix), requirement],
        capture_output=True,
        env=env,
    )
    version = _installed_version(paths, env, runner)
    paths.bundled_meta.write_text(json.dumps({"requirement": requirement, "version": version}), encoding="utf-8")
    return BundledInstall(engine_dir=paths.bundled_engine_dir, requirement=requirement, version=version, reused=False)


def _read_meta(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def _installed_version(layout: CacheLayout, env: Mapping[str, str], runner: InstallRunner) -> str | None:
    command: Sequence[str] = [
        "npm",
        "ls",
        ENGINE_PACKAGE_NAME,
        "--prefix",
        str(layout.bundled_prefix),
        "--depth",
        "0",
        "--json",
    ]
    try:
        result = runner(command, capture_output=True, env=dict(env))
    except (OSError, SubprocessExecutionError):
        return None
    try:
        payload = json.loads(result.stdout)
    except (json.JSONDecodeError, TypeError):
        return None
    deps = payload.get("dependencies") or {}
    entry = deps.get(ENGINE_PACKAGE_NAME)
    if isinstance(entry, dict) and isinstance(entry.get("version"), str):
        return entry["version"]
    return None


__all__ = ["BundledInstall", "ensure_bundled_engine"]
