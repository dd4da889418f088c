# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the subprocess wrapper."""

from __future__ import annotations

import sys

import pytest

from eslint_relay.process_utils import SubprocessExecutionError, capture_stdout, run_command


def test_run_command_feeds_standard_input() -> None:
    completed = run_command(
        [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
        capture_output=True,
        input_text="lint me",
    )

    assert completed.stdout.strip() == "LINT ME"


def test_run_command_raises_on_failure_when_checked() -> None:
    with pytest.raises(SubprocessExecutionError) as excinfo:
        run_command([sys.executable, "-c", "import sys; sys.exit(4)"], capture_output=True)

    assert excinfo.value.returncode == 4


def test_run_command_reports_timeouts_as_status_124() -> None:
    completed = run_command(
        [sys.executable, "-c", "import time; time.sleep(5)"],
        capture_output=True,
        check=False,
        timeout=0.2,
    )

    assert completed.returncode == 124
    assert "timed out" in completed.stderr


def test_missing_executable_raises_file_not_found() -> None:
    with pytest.raises(FileNotFoundError):
        run_command(["definitely-not-a-real-binary-xyz"])


def test_capture_stdout_strips_output() -> None:
    assert capture_stdout([sys.executable, "-c", "print('  /usr/local  ')"]) == "/usr/local"


def test_run_command_uses_requested_encoding_regardless_of_locale(monkeypatch) -> None:
    monkeypatch.setenv("LC_ALL", "C")
    monkeypatch.setenv("PYTHONUTF8", "0")
    monkeypatch.setenv("PYTHONCOERCECLOCALE", "0")
    script = (
        "import sys; data = sys.stdin.buffer.read(); "
        "sys.stdout.buffer.write(data.decode('utf-8').upper().encode('utf-8'))"
    )

    completed = run_command(
        [sys.executable, "-c", script],
        capture_output=True,
        input_text="const café = 'é'",
        encoding="utf-8",
    )

    assert completed.stdout == "CONST CAFÉ = 'É'"


def test_run_command_replaces_undecodable_output() -> None:
    completed = run_command(
        [sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'ok \\xff')"],
        capture_output=True,
        encoding="utf-8",
    )

    assert completed.stdout == "ok �"
