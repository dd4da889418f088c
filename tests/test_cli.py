# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI tests for the lint, fix, debug and install commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from eslint_relay.cli import app
from eslint_relay.errors import EngineNotFoundError
from eslint_relay.install import BundledInstall
from eslint_relay.jobs import JobResponse, LintMessage, Severity
from eslint_relay.process_utils import SubprocessExecutionError
from eslint_relay.worker import FIX_COMPLETE, FIX_INCOMPLETE


@pytest.fixture(autouse=True)
def isolated_user_config(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("eslint_relay.config.USER_CONFIG_PATH", tmp_path / "no-user-config.toml")
    monkeypatch.setenv("ESLINT_RELAY_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("NODE_PATH", "")


def _install_fake_session(monkeypatch, *, messages=None, response=None, error=None) -> list[object]:
    events: list[object] = []

    class FakeSession:
        def __init__(self, *, config, project_roots=()) -> None:
            self.settings = config.settings
            events.append(("roots", tuple(project_roots)))

        def activate(self, *, prestart: bool = True) -> None:
            events.append(("activate", prestart))

        def deactivate(self) -> None:
            events.append("deactivate")

        def lint(self, buffer):
            events.append(("lint", buffer.path))
            return messages

        def fix(self, buffer, *, is_save: bool = False, strict: bool = False):
            events.append(("fix", buffer.path, strict))
            if error is not None:
                raise error
            return response

    monkeypatch.setattr("eslint_relay.cli.RelaySession", FakeSession)
    return events


def test_lint_prints_messages_and_fails_on_errors(monkeypatch, js_project: Path) -> None:
    source = js_project / "src" / "app.js"
    messages = [
        LintMessage(file_path=str(source), severity=Severity.ERROR, message="Missing semicolon.", rule_id="semi", line=1),
    ]
    events = _install_fake_session(monkeypatch, messages=messages)

    result = CliRunner().invoke(app, ["lint", str(source), "--no-emoji"])

    assert result.exit_code == 1
    assert "Missing semicolon. (semi)" in result.stdout
    assert ("activate", False) in events
    assert events[-1] == "deactivate"


def test_lint_clean_file_exits_zero(monkeypatch, js_project: Path) -> None:
    source = js_project / "src" / "app.js"
    _install_fake_session(monkeypatch, messages=[])

    result = CliRunner().invoke(app, ["lint", str(source), "--no-emoji", "--root", str(js_project)])

    assert result.exit_code == 0
    assert "No problems in" in result.stdout


def test_lint_warnings_only_exit_zero(monkeypatch, js_project: Path) -> None:
    source = js_project / "src" / "app.js"
    messages = [LintMessage(file_path=str(source), severity=Severity.WARNING, message="Unexpected console")]
    _install_fake_session(monkeypatch, messages=messages)

    result = CliRunner().invoke(app, ["lint", str(source), "--no-emoji"])

    assert result.exit_code == 0
    assert "Unexpected console" in result.stdout


def test_lint_missing_file_exits_two(monkeypatch, tmp_path: Path) -> None:
    _install_fake_session(monkeypatch, messages=[])

    result = CliRunner().invoke(app, ["lint", str(tmp_path / "absent.js"), "--no-emoji"])

    assert result.exit_code == 2
    assert "Unable to read" in result.stdout


def test_invalid_settings_exit_two(monkeypatch, js_project: Path) -> None:
    (js_project / ".eslint-relay.toml").write_text("bogus = 1\n", encoding="utf-8")
    _install_fake_session(monkeypatch, messages=[])

    result = CliRunner().invoke(
        app,
        ["lint", str(js_project / "src" / "app.js"), "--root", str(js_project), "--no-emoji"],
    )

    assert result.exit_code == 2
    assert "Invalid eslint-relay settings" in result.stdout


@pytest.mark.parametrize(
    ("response", "exit_code"),
    [
        (JobResponse(messages=FIX_COMPLETE), 0),
        (JobResponse(messages=FIX_INCOMPLETE), 1),
        (None, 0),
    ],
)
def test_fix_exit_codes(monkeypatch, js_project: Path, response, exit_code: int) -> None:
    source = js_project / "src" / "app.js"
    events = _install_fake_session(monkeypatch, response=response)

    result = CliRunner().invoke(app, ["fix", str(source), "--no-emoji"])

    assert result.exit_code == exit_code
    assert ("fix", str(source.resolve()), True) in events


def test_fix_failure_exits_non_zero(monkeypatch, js_project: Path) -> None:
    source = js_project / "src" / "app.js"
    events = _install_fake_session(monkeypatch, error=EngineNotFoundError("Cannot find module `eslint`"))

    result = CliRunner().invoke(app, ["fix", str(source), "--no-emoji"])

    assert result.exit_code == 1
    assert "Fix failed" in result.stdout
    assert "Nothing to fix" not in result.stdout
    assert events[-1] == "deactivate"


def test_debug_reports_configuration(js_project: Path) -> None:
    result = CliRunner().invoke(app, ["debug", str(js_project / "src" / "app.js"), "--no-emoji"])

    assert result.exit_code == 0
    assert "eslint-relay debugging information" in result.stdout
    assert "ESLint config" in result.stdout


def test_install_reports_new_copy(monkeypatch, tmp_path: Path) -> None:
    calls: list[bool] = []

    def fake_install(*, force: bool = False) -> BundledInstall:
        calls.append(force)
        return BundledInstall(engine_dir=tmp_path / "eslint", requirement="eslint@8", version="8.57.0", reused=False)

    monkeypatch.setattr("eslint_relay.cli.ensure_bundled_engine", fake_install)

    result = CliRunner().invoke(app, ["install", "--force", "--no-emoji"])

    assert result.exit_code == 0
    assert calls == [True]
    assert "Installed eslint 8.57.0" in result.stdout
    assert "✅" not in result.stdout


def test_install_propagates_npm_failure(monkeypatch) -> None:
    def fake_install(*, force: bool = False) -> BundledInstall:
        raise SubprocessExecutionError(["npm", "install"], 7, "", "network down")

    monkeypatch.setattr("eslint_relay.cli.ensure_bundled_engine", fake_install)

    result = CliRunner().invoke(app, ["install", "--no-emoji"])

    assert result.exit_code == 7
    assert "network down" in result.stdout
