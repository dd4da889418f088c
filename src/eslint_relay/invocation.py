# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build the ESLint command line for a single file."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from pathlib import Path
from typing import Final, Literal, TypeAlias

from .config import EngineConfig, expand_env
from .constants import REPORTER_PATH
from .discovery import FileFinder, find_nearest
from .errors import ConfigNotFoundError, ResolutionError
from .jobs import JobKind

CWD_PLACEHOLDER: Final[str] = "a-b-c"
STDIN_FILENAME_FLAG: Final[str] = "--stdin-filename"
FIX_FLAG: Final[str] = "--fix-dry-run"
RULE_FLAG: Final[str] = "--rule"


class _Skip(Enum):
    SKIP = "skip"

    def __repr__(self) -> str:
        return "SKIP"


SKIP: Final = _Skip.SKIP
Invocation: TypeAlias = list[str] | Literal[_Skip.SKIP]


def require_config(config: EngineConfig, config_path: Path | None) -> None:
    """Raise :class:`ConfigNotFoundError` when linting is disabled for config-less projects."""

    if config_path is None and config.disable_when_no_eslint_config:
        raise ConfigNotFoundError("No ESLint configuration found and disableWhenNoEslintConfig is set")


class InvocationBuilder:
    """Assemble ESLint arguments that read source from standard input.

    The argument order and flag spelling follow ESLint's command-line grammar:
    ``<entry> a-b-c --stdin --format <reporter> [--rulesdir <dir>]
    [--config <path>] [--no-ignore] --stdin-filename <file>``.
    """

    def __init__(
        self,
        entry: str,
        *,
        reporter_path: Path = REPORTER_PATH,
        finder: FileFinder | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._entry = entry
        self._reporter_path = reporter_path
        self._find = finder.find if finder is not None else find_nearest
        self._env = env

    def build(
        self,
        config: EngineConfig,
        file_path: str | Path,
        file_dir: Path,
        config_path: Path | None,
    ) -> Invocation:
        """Return the argv for linting ``file_path`` or :data:`SKIP`.

        Args:
            config: Engine options for the job.
            file_path: Path ESLint attributes diagnostics to.
            file_dir: Directory containing ``file_path``.
            config_path: Project configuration discovered for ``file_dir``.

        Returns:
            list[str] | SKIP: Arguments in ESLint's order, or ``SKIP`` when the
            project has no configuration and must not be linted.

        Raises:
            ResolutionError: If a relative rules directory cannot be found.
        """

        try:
            require_config(config, config_path)
        except ConfigNotFoundError:
            return SKIP

        selected_config = config.eslintrc_path or (str(config_path) if config_path is not None else None)

        argv = [
            self._entry,
            CWD_PLACEHOLDER,
            "--stdin",
            "--format",
            str(self._reporter_path),
        ]
        if config.eslint_rules_dir:
            argv.extend(["--rulesdir", str(self._rules_dir(config.eslint_rules_dir, file_dir))])
        if selected_config:
            argv.extend(["--config", expand_env(selected_config, self._env)])
        if config.disable_eslint_ignore:
            argv.append("--no-ignore")
        argv.extend([STDIN_FILENAME_FLAG, str(file_path)])
        return argv

    def _rules_dir(self, raw: str, file_dir: Path) -> Path:
        rules_dir = Path(expand_env(raw, self._env)).expanduser()
        if rules_dir.is_absolute():
            return rules_dir
        located = self._find(file_dir, str(rules_dir))
        if located is None:
            raise ResolutionError(f"Unable to find rules directory '{rules_dir}' above {file_dir}")
        return located


def with_job_options(
    argv: Sequence[str],
    kind: JobKind,
    rules: Mapping[str, bool] | None = None,
) -> list[str]:
    """Insert per-job flags ahead of the trailing ``--stdin-filename`` pair.

    Suppressed rules become ``--rule "<id>: off"``; fix jobs add
    ``--fix-dry-run`` so the fixed source comes back in the report.

    Args:
        argv: Arguments produced by :meth:`InvocationBuilder.build`.
        kind: Job kind.
        rules: Suppression set; entries mapped to ``False`` are ignored.

    Returns:
        list[str]: New argument list still ending in ``--stdin-filename <file>``.
    """

    if len(argv) < 2 or argv[-2] != STDIN_FILENAME_FLAG:
        raise ValueError("argv must end with --stdin-filename <file>")
    extra: list[str] = []
    for rule, suppressed in sorted((rules or {}).items()):
        if suppressed:
            extra.extend([RULE_FLAG, f"{rule}: off"])
    if kind is JobKind.FIX:
        extra.append(FIX_FLAG)
    return [*argv[:-2], *extra, *argv[-2:]]


__all__ = [
    "CWD_PLACEHOLDER",
    "SKIP",
    "Invocation",
    "InvocationBuilder",
    "require_config",
    "with_job_options",
]
