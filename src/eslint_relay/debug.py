# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Collect troubleshooting information for a file."""

from __future__ import annotations

import platform
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import RelaySettings
from .discovery import get_config_path
from .errors import RelayError
from .resolver import PathResolver


@dataclass(slots=True)
class DebugReport:
    """Key facts explaining how a file would be linted."""

    version: str
    platform: str
    python: str
    node: str | None
    file_path: str
    engine_dir: str | None
    engine_error: str | None
    config_path: str | None
    settings: RelaySettings

    def rows(self) -> list[tuple[str, str]]:
        return [
            ("eslint-relay version", self.version),
            ("Platform", self.platform),
            ("Python", self.python),
            ("node", self.node or "not found"),
            ("File", self.file_path),
            ("ESLint directory", self.engine_dir or f"unresolved ({self.engine_error})"),
            ("ESLint config", self.config_path or "none"),
            ("Settings", self.settings.model_dump_json()),
        ]

    def as_text(self) -> str:
        return "\n".join(f"{label}: {value}" for label, value in self.rows())


def report(file_path: Path, settings: RelaySettings, *, resolver: PathResolver | None = None) -> DebugReport:
    """Resolve ``file_path`` in-process and describe the outcome.

    Resolution failures are recorded in the report rather than raised.
    """

    target = file_path.expanduser().resolve()
    file_dir = target.parent
    engine_dir: str | None = None
    engine_error: str | None = None
    try:
        handle = (resolver or PathResolver()).resolve(file_dir, settings.engine)
        engine_dir = str(handle.engine_dir)
    except RelayError as exc:
        engine_error = str(exc)
    config_path = get_config_path(file_dir)
    return DebugReport(
        version=__version__,
        platform=f"{platform.system()} {platform.release()} ({sys.platform})",
        python=sys.version.split()[0],
        node=shutil.which("node"),
        file_path=str(target),
        engine_dir=engine_dir,
        engine_error=engine_error,
        config_path=str(config_path) if config_path is not None else None,
        settings=settings,
    )


def render(debug_report: DebugReport, console: Console) -> None:
    table = Table(title="eslint-relay debugging information", box=box.SIMPLE, expand=True)
    table.add_column("Item", style="bold", no_wrap=True)
    table.add_column("Value", overflow="fold")
    for label, value in debug_report.rows():
        table.add_row(label, value)
    console.print(table)


__all__ = ["DebugReport", "render", "report"]
