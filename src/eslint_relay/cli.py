# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command line interface for linting and fixing files through the worker."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import typer
from rich import box
from rich.table import Table

from .config import ConfigProvider, RelaySettings
from .debug import render, report
from .errors import ConfigError, RelayError
from .install import ensure_bundled_engine
from .jobs import LintMessage, Severity
from .logging import configure_logging, detect_tty, fail, get_console, info, ok, section, warn
from .process_utils import SubprocessExecutionError
from .session import FileBuffer, RelaySession
from .worker import FIX_INCOMPLETE

app = typer.Typer(
    help="Lint and fix JavaScript with the project's own ESLint.",
    no_args_is_help=True,
    add_completion=False,
)

_SEVERITY_STYLE = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


def _load_provider(root: Path | None, path: Path, *, emoji: bool) -> ConfigProvider:
    project_root = (root or path.expanduser().resolve().parent).resolve()
    try:
        return ConfigProvider.for_root(project_root)
    except ConfigError as exc:
        fail(str(exc), use_emoji=emoji)
        raise typer.Exit(code=2) from exc


def _read_buffer(path: Path, *, emoji: bool) -> FileBuffer:
    try:
        return FileBuffer.from_path(path)
    except OSError as exc:
        fail(f"Unable to read {path}: {exc}", use_emoji=emoji)
        raise typer.Exit(code=2) from exc


def _setup(verbose: bool) -> None:
    configure_logging(logging.DEBUG if verbose else logging.WARNING, use_color=detect_tty())


def _message_text(message: LintMessage, settings: RelaySettings) -> str:
    if settings.show_rule and message.rule_id:
        return f"{message.message} ({message.rule_id})"
    return message.message


def render_messages(messages: Sequence[LintMessage], settings: RelaySettings, *, emoji: bool) -> None:
    """Print ``messages`` as a rich table."""

    console = get_console(color=detect_tty(), emoji=emoji)
    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    table.add_column("Location", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Message", overflow="fold")
    for message in messages:
        location = f"{message.line or 1}:{message.column or 1}"
        style = _SEVERITY_STYLE[message.severity]
        table.add_row(location, f"[{style}]{message.severity.value}[/]", _message_text(message, settings))
    console.print(table)


@app.command("lint")
def lint_command(
    path: Path = typer.Argument(..., help="File to lint."),
    root: Path | None = typer.Option(None, "--root", "-r", help="Project root holding relay settings."),
    emoji: bool = typer.Option(True, "--emoji/--no-emoji", help="Toggle emoji in CLI output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Emit debug logging on stderr."),
) -> None:
    """Lint PATH and print its diagnostics; exit 1 when errors are reported."""

    _setup(verbose)
    provider = _load_provider(root, path, emoji=emoji)
    buffer = _read_buffer(path, emoji=emoji)
    session = RelaySession(config=provider, project_roots=[root.resolve()] if root else ())
    session.activate(prestart=False)
    try:
        messages = session.lint(buffer) or []
    finally:
        session.deactivate()

    if not messages:
        ok(f"No problems in {path}", use_emoji=emoji)
        raise typer.Exit(code=0)
    section(str(path), use_color=detect_tty())
    render_messages(messages, provider.settings, emoji=emoji)
    errors = sum(1 for message in messages if message.severity is Severity.ERROR)
    raise typer.Exit(code=1 if errors else 0)


@app.command("fix")
def fix_command(
    path: Path = typer.Argument(..., help="File to fix in place."),
    root: Path | None = typer.Option(None, "--root", "-r", help="Project root holding relay settings."),
    emoji: bool = typer.Option(True, "--emoji/--no-emoji", help="Toggle emoji in CLI output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Emit debug logging on stderr."),
) -> None:
    """Apply ESLint fixes to PATH; exit 1 when problems remain or the fix fails."""

    _setup(verbose)
    provider = _load_provider(root, path, emoji=emoji)
    buffer = _read_buffer(path, emoji=emoji)
    session = RelaySession(config=provider, project_roots=[root.resolve()] if root else ())
    session.activate(prestart=False)
    try:
        response = session.fix(buffer, strict=True)
    except RelayError as exc:
        fail(f"Fix failed for {path}: {exc}", use_emoji=emoji)
        raise typer.Exit(code=1) from exc
    finally:
        session.deactivate()

    if response is None:
        info(f"Nothing to fix in {path}", use_emoji=emoji)
        raise typer.Exit(code=0)
    raise typer.Exit(code=1 if response.messages == FIX_INCOMPLETE else 0)


@app.command("debug")
def debug_command(
    path: Path = typer.Argument(..., help="File whose resolution should be explained."),
    root: Path | None = typer.Option(None, "--root", "-r", help="Project root holding relay settings."),
    emoji: bool = typer.Option(True, "--emoji/--no-emoji", help="Toggle emoji in CLI output."),
) -> None:
    """Show which ESLint and configuration PATH would be linted with."""

    provider = _load_provider(root, path, emoji=emoji)
    render(report(path, provider.settings), get_console(color=detect_tty(), emoji=emoji))


@app.command("install")
def install_command(
    force: bool = typer.Option(False, "--force", help="Reinstall even when a copy is cached."),
    emoji: bool = typer.Option(True, "--emoji/--no-emoji", help="Toggle emoji in CLI output."),
) -> None:
    """Install the bundled ESLint used when a project ships none."""

    try:
        result = ensure_bundled_engine(force=force)
    except FileNotFoundError as exc:
        fail(f"npm is not available: {exc}", use_emoji=emoji)
        raise typer.Exit(code=1) from exc
    except SubprocessExecutionError as exc:
        fail(str(exc), use_emoji=emoji)
        raise typer.Exit(code=exc.returncode or 1) from exc
    except OSError as exc:
        fail(str(exc), use_emoji=emoji)
        raise typer.Exit(code=1) from exc

    if result.reused:
        info(f"Bundled ESLint already present in {result.engine_dir}", use_emoji=emoji)
    elif result.version is None:
        warn(f"Installed {result.requirement} but could not determine its version", use_emoji=emoji)
    else:
        ok(f"Installed eslint {result.version} into {result.engine_dir}", use_emoji=emoji)


__all__ = ["app", "render_messages"]
