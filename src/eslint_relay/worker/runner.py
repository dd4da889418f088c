# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Execute lint and fix jobs against a resolved ESLint installation."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from ..discovery import CachedFileFinder, FileFinder, engine_working_directory, get_config_path
from ..errors import ConfigNotFoundError, JobExecutionError
from ..invocation import SKIP, InvocationBuilder, require_config, with_job_options
from ..jobs import JobKind, JobResponse, JobSpec, LintMessage
from ..resolver import EngineHandle, PathResolver

LOGGER = logging.getLogger(__name__)

# ESLint exits 0 when clean and 1 when it reported problems; anything else is fatal.
_SUCCESS_CODES: Final[frozenset[int]] = frozenset({0, 1})
FIX_COMPLETE: Final[str] = "Fix complete."
FIX_INCOMPLETE: Final[str] = "Fix attempt complete, but linting errors remain."


class JobRunner:
    """Run :class:`JobSpec` requests inside the worker process.

    The runner owns the worker's :class:`PathResolver`, so engine resolution
    caches live exactly as long as the worker does.
    """

    def __init__(
        self,
        *,
        resolver: PathResolver | None = None,
        finder: FileFinder | None = None,
    ) -> None:
        self._finder = finder or CachedFileFinder()
        self._resolver = resolver or PathResolver(finder=self._finder)

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    def run(self, spec: JobSpec) -> JobResponse:
        """Execute ``spec`` and return its response.

        Raises:
            EngineNotFoundError: If no ESLint installation applies to the file.
            ResolutionError: If resolution or argument construction fails.
            JobExecutionError: If ESLint fails or its report cannot be parsed.
        """

        file_path = Path(spec.file_path)
        file_dir = file_path.parent
        config_path = get_config_path(file_dir, finder=self._finder)
        try:
            require_config(spec.config, config_path)
        except ConfigNotFoundError:
            LOGGER.debug("no ESLint configuration for %s, skipping", file_path)
            return JobResponse(messages="" if spec.kind is JobKind.FIX else [])

        engine = self._resolver.resolve(file_dir, spec.config)
        argv = InvocationBuilder(engine.node, finder=self._finder).build(
            spec.config,
            spec.file_path,
            file_dir,
            config_path,
        )
        if argv is SKIP:
            return JobResponse(messages="" if spec.kind is JobKind.FIX else [])
        cwd = engine_working_directory(
            file_dir,
            disable_eslint_ignore=spec.config.disable_eslint_ignore,
            finder=self._finder,
        )
        if spec.kind is JobKind.FIX:
            return self._fix(engine, argv, spec, cwd)
        return self._lint(engine, argv, spec, cwd)

    def _lint(self, engine: EngineHandle, argv: Sequence[str], spec: JobSpec, cwd: Path) -> JobResponse:
        report = self._execute(engine, with_job_options(argv, JobKind.LINT, spec.rules), spec, cwd)
        messages = _messages(report, spec.file_path)
        return JobResponse(messages=messages, rules_diff=_fixable_rules(messages))

    def _fix(self, engine: EngineHandle, argv: Sequence[str], spec: JobSpec, cwd: Path) -> JobResponse:
        before = _messages(
            self._execute(engine, with_job_options(argv, JobKind.LINT, spec.rules), spec, cwd),
            spec.file_path,
        )
        report = self._execute(engine, with_job_options(argv, JobKind.FIX, spec.rules), spec, cwd)
        remaining = _messages(report, spec.file_path)

        output = _fixed_output(report)
        if output is not None and output != spec.contents:
            Path(spec.file_path).write_text(output, encoding="utf-8")
            LOGGER.debug("wrote fixes to %s", spec.file_path)

        still_reported = {message.rule_id for message in remaining if message.rule_id}
        rules_diff = {
            rule: rule not in still_reported for rule, fixable in _fixable_rules(before).items() if fixable
        }
        rules_diff.update({rule: False for rule in still_reported if rule not in rules_diff})
        return JobResponse(messages=FIX_INCOMPLETE if remaining else FIX_COMPLETE, rules_diff=rules_diff)

    @staticmethod
    def _execute(engine: EngineHandle, argv: Sequence[str], spec: JobSpec, cwd: Path) -> list[Any]:
        completed = engine.execute(argv, spec.contents, cwd=cwd)
        if completed.returncode not in _SUCCESS_CODES:
            detail = (completed.stderr or completed.stdout or "").strip()
            raise JobExecutionError(f"ESLint exited with status {completed.returncode}: {detail or '<no output>'}")
        try:
            report = json.loads(completed.stdout or "[]")
        except json.JSONDecodeError as exc:
            raise JobExecutionError(f"Unable to parse ESLint output: {completed.stdout[:200]!r}") from exc
        if not isinstance(report, list):
            raise JobExecutionError("ESLint report must be a JSON array")
        return report


def _messages(report: Sequence[Any], file_path: str) -> list[LintMessage]:
    messages: list[LintMessage] = []
    for result in report:
        if not isinstance(result, Mapping):
            continue
        raw_messages = result.get("messages")
        if not isinstance(raw_messages, Sequence):
            continue
        result_path = result.get("filePath") if isinstance(result.get("filePath"), str) else file_path
        messages.extend(
            LintMessage.from_eslint(entry, result_path) for entry in raw_messages if isinstance(entry, Mapping)
        )
    return messages


def _fixable_rules(messages: Sequence[LintMessage]) -> dict[str, bool]:
    rules: dict[str, bool] = {}
    for message in messages:
        if message.rule_id is None:
            continue
        rules[message.rule_id] = rules.get(message.rule_id, False) or message.fixable
    return rules


def _fixed_output(report: Sequence[Any]) -> str | None:
    for result in report:
        if isinstance(result, Mapping) and isinstance(result.get("output"), str):
            return result["output"]
    return None


__all__ = ["FIX_COMPLETE", "FIX_INCOMPLETE", "JobRunner"]
