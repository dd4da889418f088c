# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate the ESLint installation that applies to a file's project."""

from __future__ import annotations

import logging
import os
import shutil
import sys
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from subprocess import CompletedProcess
from threading import Lock
from typing import Final, Protocol

from .config import EngineConfig
from .constants import ENGINE_CLI_SCRIPT, ENGINE_PACKAGE_NAME, cache_layout
from .discovery import NODE_MODULES_DIR, FileFinder, find_nearest
from .errors import EngineLoadError, EngineNotFoundError, ResolutionError
from .process_utils import CommandRunner, SubprocessExecutionError, capture_stdout, run_command

LOGGER = logging.getLogger(__name__)

NODE_PATH_ENV: Final[str] = "NODE_PATH"
WINDOWS_PLATFORM: Final[str] = "win32"


@dataclass(frozen=True, slots=True)
class EngineHandle:
    """Runnable ESLint installation: the ``node`` binary plus the engine's CLI script."""

    engine_dir: Path
    node: str
    cli_script: Path

    def command(self, argv: Sequence[str]) -> list[str]:
        """Translate an invocation ``argv`` into the command actually spawned.

        ``argv[1]`` is the placeholder working-directory token, which occupies
        the slot Node reserves for the script path; it is replaced by the
        engine's CLI script.
        """

        if len(argv) < 2:
            raise ValueError("engine argv requires an entry and a placeholder token")
        return [argv[0], str(self.cli_script), *argv[2:]]

    def execute(
        self,
        argv: Sequence[str],
        contents: str,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CompletedProcess[str]:
        """Run the engine with ``contents`` on standard input."""

        return run_command(
            self.command(argv),
            cwd=cwd,
            env=env,
            check=False,
            capture_output=True,
            input_text=contents,
            encoding="utf-8",
        )


class EngineLoader(Protocol):
    """Strategy turning an engine directory into an :class:`EngineHandle`."""

    def load(self, engine_dir: Path) -> EngineHandle:
        """Return a handle for the engine installed in ``engine_dir``.

        Raises:
            EngineLoadError: If ``engine_dir`` holds no runnable engine.
        """
        ...

    def invalidate_caches(self) -> None:
        """Forget previously loaded handles."""
        ...


class NodeEngineLoader:
    """Load ESLint installations that run under the Node.js interpreter."""

    def __init__(self, node_executable: str | None = None) -> None:
        self._node_executable = node_executable
        self._handles: dict[Path, EngineHandle] = {}
        self._lock = Lock()

    def node(self) -> str:
        """Return the ``node`` interpreter used to run engines.

        Raises:
            EngineLoadError: If no interpreter can be found on ``PATH``.
        """

        if self._node_executable:
            return self._node_executable
        located = shutil.which("node")
        if located is None:
            raise EngineLoadError("Unable to locate the `node` executable on PATH")
        return located

    def load(self, engine_dir: Path) -> EngineHandle:
        with self._lock:
            cached = self._handles.get(engine_dir)
        if cached is not None:
            return cached
        cli_script = engine_dir.joinpath(*ENGINE_CLI_SCRIPT)
        if not cli_script.is_file():
            raise EngineLoadError(f"No ESLint command-line entry point at {cli_script}")
        handle = EngineHandle(engine_dir=engine_dir, node=self.node(), cli_script=cli_script)
        with self._lock:
            self._handles[engine_dir] = handle
        return handle

    def invalidate_caches(self) -> None:
        with self._lock:
            self._handles.clear()


def global_engine_dir(prefix: Path, *, platform: str | None = None) -> Path:
    """Return where a global npm install under ``prefix`` keeps ESLint.

    Args:
        prefix: npm global prefix.
        platform: Platform identifier; defaults to :data:`sys.platform`.

    Returns:
        Path: Engine directory for the platform's global layout.
    """

    if (platform or sys.platform) == WINDOWS_PLATFORM:
        return prefix / NODE_MODULES_DIR / ENGINE_PACKAGE_NAME
    return prefix / "lib" / NODE_MODULES_DIR / ENGINE_PACKAGE_NAME


class PathResolver:
    """Resolve the ESLint installation for files, caching the last result.

    The resolver owns three pieces of process-lifetime state: the last walk
    from a file directory to its ``node_modules``, the engine handle loaded
    for the active module directory, and the npm global prefix. The prefix is
    queried at most once and never refreshed.
    """

    def __init__(
        self,
        *,
        loader: EngineLoader | None = None,
        runner: CommandRunner | None = None,
        finder: FileFinder | None = None,
        bundled_engine_dir: Path | None = None,
        platform: str | None = None,
        environ: MutableMapping[str, str] | None = None,
    ) -> None:
        self._loader = loader or NodeEngineLoader()
        self._runner = runner or capture_stdout
        self._find = finder.find if finder is not None else find_nearest
        self._bundled_engine_dir = bundled_engine_dir or cache_layout().bundled_engine_dir
        self._platform = platform or sys.platform
        self._environ = os.environ if environ is None else environ
        self._last_walk: tuple[Path, Path | None] | None = None
        self._modules_dir_active = False
        self._last_modules_dir: Path | None = None
        self._engine_slot: EngineHandle | None = None
        self._node_prefix: str | None = None

    @property
    def last_modules_dir(self) -> Path | None:
        return self._last_modules_dir

    def resolve(self, file_dir: Path, config: EngineConfig) -> EngineHandle:
        """Return the engine handle that applies to files in ``file_dir``.

        Args:
            file_dir: Directory of the file being linted.
            config: Engine options for the job.

        Returns:
            EngineHandle: Loaded engine.

        Raises:
            EngineNotFoundError: If neither a project, global nor bundled engine loads.
            ResolutionError: If the filesystem walk or npm prefix query fails.
        """

        modules_dir = self.find_modules_dir(file_dir)
        self.refresh_modules_path(modules_dir)
        return self.engine_from_directory(modules_dir, config)

    def find_modules_dir(self, file_dir: Path) -> Path | None:
        """Return the nearest ``node_modules`` above ``file_dir``, reusing the last walk."""

        directory = Path(file_dir)
        if self._last_walk is not None and self._last_walk[0] == directory:
            return self._last_walk[1]
        try:
            modules_dir = self._find(directory, NODE_MODULES_DIR)
        except OSError as exc:
            raise ResolutionError(f"Unable to search for node_modules above {directory}: {exc}") from exc
        self._last_walk = (directory, modules_dir)
        return modules_dir

    def refresh_modules_path(self, modules_dir: Path | None) -> None:
        """Make ``modules_dir`` the active module root when it changed.

        Engine subprocesses inherit ``NODE_PATH`` so plugins and shareable
        configs resolve from the project being linted, and the loader forgets
        handles loaded for the previous project.
        """

        if self._modules_dir_active and self._last_modules_dir == modules_dir:
            return
        LOGGER.debug("active node_modules changed to %s", modules_dir)
        self._modules_dir_active = True
        self._last_modules_dir = modules_dir
        self._environ[NODE_PATH_ENV] = str(modules_dir) if modules_dir is not None else ""
        self._engine_slot = None
        self._loader.invalidate_caches()

    def engine_from_directory(self, modules_dir: Path | None, config: EngineConfig) -> EngineHandle:
        """Load ESLint from the global prefix or from ``modules_dir``."""

        if config.use_global_eslint:
            prefix = config.global_node_path or self.node_prefix_path()
            engine_dir = global_engine_dir(Path(prefix), platform=self._platform)
        else:
            if modules_dir is None:
                raise EngineNotFoundError("Cannot find module `eslint`")
            engine_dir = modules_dir / ENGINE_PACKAGE_NAME

        if self._engine_slot is not None and self._engine_slot.engine_dir == engine_dir:
            return self._engine_slot

        try:
            handle = self._loader.load(engine_dir)
        except EngineLoadError as exc:
            if config.use_global_eslint:
                raise EngineNotFoundError(
                    "ESLint not found, please install it or make sure $PATH is set correctly",
                ) from exc
            LOGGER.info("no usable ESLint in %s, falling back to the bundled copy", engine_dir)
            handle = self._load_bundled(exc)
        self._engine_slot = handle
        return handle

    def _load_bundled(self, cause: EngineLoadError) -> EngineHandle:
        try:
            return self._loader.load(self._bundled_engine_dir)
        except EngineLoadError as exc:
            raise EngineNotFoundError(
                f"{cause}; the bundled ESLint is not installed either (run `eslint-relay install`)",
            ) from exc

    def node_prefix_path(self) -> str:
        """Return the npm global prefix, querying npm on first use only.

        Raises:
            ResolutionError: If ``npm get prefix`` cannot be executed.
        """

        if self._node_prefix is None:
            npm_command = "npm.cmd" if self._platform == WINDOWS_PLATFORM else "npm"
            try:
                prefix = self._runner([npm_command, "get", "prefix"]).strip()
            except (OSError, ValueError, SubprocessExecutionError) as exc:
                raise ResolutionError(
                    "Unable to execute `npm get prefix`. Please make sure $PATH is set correctly",
                ) from exc
            if not prefix:
                raise ResolutionError("`npm get prefix` returned an empty prefix")
            self._node_prefix = prefix
        return self._node_prefix


__all__ = [
    "EngineHandle",
    "EngineLoader",
    "NodeEngineLoader",
    "PathResolver",
    "global_engine_dir",
]
