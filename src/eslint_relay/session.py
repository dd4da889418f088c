# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Editor-facing entry points: lint, fix, fix-on-save and worker lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal, Protocol

from .config import ConfigProvider, RelaySettings
from .discovery import is_lint_disabled
from .dispatcher import JobDispatcher
from .errors import ModifiedFileError, RelayError
from .jobs import JobKind, JobResponse, JobSpec, LintMessage, Severity
from .logging import fail, info, ok, warn
from .rules import RuleState

LOGGER = logging.getLogger(__name__)

REMOTE_FILE_MESSAGE: Final[str] = "Remote file open, eslint-relay is disabled for this file."
SAVE_BEFORE_FIX_MESSAGE: Final[str] = "eslint-relay: Please save before fixing"

NotificationLevel = Literal["info", "success", "warning", "error"]


class EditorBuffer(Protocol):
    """Minimal view of an editor buffer the session operates on."""

    @property
    def path(self) -> str | None: ...

    @property
    def text(self) -> str: ...

    @property
    def modified(self) -> bool: ...

    @property
    def scope(self) -> str | None: ...


@dataclass(frozen=True, slots=True)
class FileBuffer:
    """:class:`EditorBuffer` backed by a file on disk, used by the CLI."""

    path: str | None
    text: str
    modified: bool = False
    scope: str | None = "source.js"

    @classmethod
    def from_path(cls, path: Path, *, scope: str | None = "source.js") -> FileBuffer:
        resolved = path.expanduser().resolve()
        return cls(path=str(resolved), text=resolved.read_text(encoding="utf-8"), scope=scope)


class Notifier(Protocol):
    """Receives user-visible notifications."""

    def __call__(self, level: NotificationLevel, message: str) -> None: ...


def console_notifier(level: NotificationLevel, message: str) -> None:
    """Default :class:`Notifier` printing through the rich logging helpers."""

    if level == "success":
        ok(message, use_emoji=True)
    elif level == "warning":
        warn(message, use_emoji=True)
    elif level == "error":
        fail(message, use_emoji=True)
    else:
        info(message, use_emoji=True)


def has_valid_scope(buffer: EditorBuffer, scopes: Iterable[str]) -> bool:
    """Return whether ``buffer`` belongs to one of the configured scopes.

    Args:
        buffer: Buffer whose grammar scope is checked.
        scopes: Scope names eligible for linting.

    Returns:
        bool: ``True`` when the buffer has a scope listed in ``scopes``.
    """

    return buffer.scope is not None and buffer.scope in set(scopes)


def simple_message(buffer: EditorBuffer, severity: Severity, excerpt: str) -> list[LintMessage]:
    """Return a single file-level message for ``buffer``."""

    return [LintMessage(file_path=buffer.path or "", severity=severity, message=excerpt, line=1, column=1)]


def from_exception(buffer: EditorBuffer, exc: BaseException) -> list[LintMessage]:
    """Turn a failed job into a single error message on ``buffer``.

    Args:
        buffer: Buffer the failed job was run for.
        exc: Failure raised by the job.

    Returns:
        list[LintMessage]: One file-level error describing ``exc``.
    """

    return simple_message(buffer, Severity.ERROR, f"Error while running ESLint: {exc}")


def project_path_for(file_path: str, roots: Iterable[Path]) -> str:
    """Return the project root containing ``file_path``, or ``""``."""

    target = Path(file_path)
    for root in roots:
        if target.is_relative_to(root):
            return str(root)
    return ""


class RelaySession:
    """Wire settings, rule memory and the job dispatcher together.

    The session is the only place that mutates :class:`RuleState`; it does so
    after a fix job completes.
    """

    def __init__(
        self,
        *,
        config: ConfigProvider | None = None,
        dispatcher: JobDispatcher | None = None,
        rules: RuleState | None = None,
        notifier: Notifier | None = None,
        project_roots: Iterable[Path] = (),
    ) -> None:
        self._config = config or ConfigProvider()
        self._dispatcher = dispatcher or JobDispatcher()
        self._rules = rules or RuleState()
        self._notify = notifier or console_notifier
        self._project_roots = tuple(Path(root) for root in project_roots)
        self._disposers: list[Callable[[], None]] = []

    @property
    def settings(self) -> RelaySettings:
        return self._config.settings

    @property
    def rules(self) -> RuleState:
        return self._rules

    @property
    def dispatcher(self) -> JobDispatcher:
        return self._dispatcher

    def activate(self, *, prestart: bool = True) -> None:
        """Subscribe to settings changes and optionally pre-start the worker."""

        self._disposers.append(self._config.subscribe(self._settings_changed))
        if prestart:
            self._dispatcher.start()

    def deactivate(self) -> None:
        """Kill the worker unconditionally and drop subscriptions."""

        self._dispatcher.kill(True)
        for dispose in self._disposers:
            dispose()
        self._disposers.clear()

    def _settings_changed(self, settings: RelaySettings) -> None:
        LOGGER.debug("settings changed: %s", settings.model_dump())

    def lint(self, buffer: EditorBuffer) -> list[LintMessage] | None:
        """Lint ``buffer`` and return its messages.

        Returns:
            list[LintMessage] | None: ``None`` when the buffer has no path;
            otherwise diagnostics, or a single message describing a failure.
        """

        file_path = buffer.path
        if not file_path:
            return None
        if "://" in file_path:
            return simple_message(buffer, Severity.WARNING, REMOTE_FILE_MESSAGE)

        settings = self.settings
        text = buffer.text
        ignored: dict[str, bool] | None = None
        if buffer.modified:
            ignored = (
                self._rules.get_ignored_rules(settings.ignored_rules_when_modified)
                if settings.ignore_fixable_rules_while_typing
                else self._rules.to_ignored(settings.ignored_rules_when_modified)
            )

        try:
            response = self._submit(JobKind.LINT, buffer, text, ignored).result()
        except RelayError as exc:
            return from_exception(buffer, exc)
        if isinstance(response.messages, str):
            return []
        return list(response.messages)

    def fix(
        self,
        buffer: EditorBuffer | None,
        *,
        is_save: bool = False,
        strict: bool = False,
    ) -> JobResponse | None:
        """Fix ``buffer`` on disk.

        Unsaved buffers are refused with a notification; empty buffers and
        projects where linting is disabled are skipped silently.

        Args:
            buffer: Buffer whose file should be fixed.
            is_save: Whether the fix was triggered by saving; suppresses the
                success notification.
            strict: Propagate job failures instead of notifying and returning
                ``None``, so callers can tell a failure from a no-op.

        Returns:
            JobResponse | None: The fix response, or ``None`` when no job ran.

        Raises:
            RelayError: If ``strict`` is set and the fix job failed.
        """

        if buffer is None or not buffer.path:
            return None
        if buffer.modified:
            self._notify("error", str(ModifiedFileError(SAVE_BEFORE_FIX_MESSAGE)))
            return None

        text = buffer.text
        if not text:
            return None

        settings = self.settings
        file_dir = Path(buffer.path).parent
        if is_lint_disabled(
            file_dir,
            disable_when_no_eslint_config=settings.engine.disable_when_no_eslint_config,
        ):
            return None

        try:
            response = self._submit(
                JobKind.FIX,
                buffer,
                text,
                self._rules.to_ignored(settings.ignored_rules_when_fixing),
            ).result()
        except RelayError as exc:
            if strict:
                raise
            self._notify("warning", str(exc))
            return None

        self._rules.update_rules(response.rules_diff)
        if not is_save and isinstance(response.messages, str) and response.messages:
            self._notify("success", response.messages)
        return response

    def on_save(self, buffer: EditorBuffer) -> JobResponse | None:
        """Run fix-on-save for ``buffer`` when enabled for its scope."""

        settings = self.settings
        if settings.fix_on_save and has_valid_scope(buffer, settings.scopes):
            return self.fix(buffer, is_save=True)
        return None

    def _submit(
        self,
        kind: JobKind,
        buffer: EditorBuffer,
        text: str,
        rules: dict[str, bool] | None,
    ) -> Future[JobResponse]:
        file_path = buffer.path or ""
        spec = JobSpec(
            kind=kind,
            contents=text,
            config=self._config.job_config(),
            rules=rules,
            file_path=file_path,
            project_path=project_path_for(file_path, self._project_roots),
        )
        return self._dispatcher.send_job(spec)


__all__ = [
    "EditorBuffer",
    "FileBuffer",
    "Notifier",
    "RelaySession",
    "console_notifier",
    "from_exception",
    "has_valid_scope",
    "project_path_for",
    "simple_message",
]
