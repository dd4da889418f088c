# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import json
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from eslint_relay.errors import EngineLoadError
from eslint_relay.resolver import EngineHandle


def make_engine(engine_dir: Path) -> Path:
    """Create a minimal ESLint package layout under ``engine_dir``."""

    cli_script = engine_dir / "bin" / "eslint.js"
    cli_script.parent.mkdir(parents=True, exist_ok=True)
    cli_script.write_text("// eslint stub\n", encoding="utf-8")
    return engine_dir


@pytest.fixture
def js_project(tmp_path: Path) -> Path:
    """Return a project holding an ESLint config, a local engine and a source file."""

    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / ".eslintrc.json").write_text(json.dumps({"root": True}), encoding="utf-8")
    make_engine(root / "node_modules" / "eslint")
    (root / "src" / "app.js").write_text("var a = 1\n", encoding="utf-8")
    return root


class RecordingLoader:
    """Engine loader accepting only directories registered up front."""

    def __init__(self, *known: Path) -> None:
        self.known = set(known)
        self.loads: list[Path] = []
        self.invalidations = 0

    def load(self, engine_dir: Path) -> EngineHandle:
        self.loads.append(engine_dir)
        if engine_dir not in self.known:
            raise EngineLoadError(f"no engine in {engine_dir}")
        return EngineHandle(engine_dir=engine_dir, node="node", cli_script=engine_dir / "bin" / "eslint.js")

    def invalidate_caches(self) -> None:
        self.invalidations += 1


@pytest.fixture
def loader_factory():
    return RecordingLoader


@dataclass
class ScriptedEngine:
    """Engine double replaying canned ESLint reports in order."""

    engine_dir: Path
    reports: list[object]
    returncode: int = 1
    node: str = "node"
    calls: list[tuple[list[str], str, Path | None]] = field(default_factory=list)

    @property
    def cli_script(self) -> Path:
        return self.engine_dir / "bin" / "eslint.js"

    def execute(self, argv: Sequence[str], contents: str, *, cwd: Path | None = None, env=None):
        self.calls.append((list(argv), contents, cwd))
        report = self.reports.pop(0)
        stdout = report if isinstance(report, str) else json.dumps(report)
        return subprocess.CompletedProcess(args=list(argv), returncode=self.returncode, stdout=stdout, stderr="")


class StaticResolver:
    """Resolver double always handing back the same engine."""

    def __init__(self, engine: ScriptedEngine) -> None:
        self.engine = engine
        self.calls: list[Path] = []

    def resolve(self, file_dir: Path, config) -> ScriptedEngine:
        self.calls.append(file_dir)
        return self.engine


@pytest.fixture
def scripted_engine_factory():
    return ScriptedEngine


@pytest.fixture
def static_resolver_factory():
    return StaticResolver


@pytest.fixture
def engine_factory():
    return make_engine


STUB_WORKER = '''
import json
import subprocess
import sys

print(json.dumps({"status": "ready", "version": "stub"}), flush=True)
held = []


def reply(request, response):
    print(json.dumps({"id": request["id"], "status": "ok", "response": response}), flush=True)


for line in sys.stdin:
    request = json.loads(line)
    if request.get("op") == "shutdown":
        reply(request, {})
        break
    contents = request["job"]["contents"]
    if contents == "crash":
        sys.stderr.write("stub worker exploded\\n")
        sys.stderr.flush()
        sys.exit(3)
    if contents == "orphan-crash":
        # The grandchild inherits stdout, so the reader sees EOF only once it exits.
        subprocess.Popen([sys.executable, "-c", "import time; time.sleep(2)"], stdout=sys.stdout, stderr=sys.stderr)
        sys.exit(3)
    if contents == "fail":
        print(
            json.dumps(
                {"id": request["id"], "status": "error", "error_code": "EngineNotFoundError", "message": "missing"}
            ),
            flush=True,
        )
        continue
    if contents.startswith("hold"):
        held.append(request)
        continue
    reply(request, {"messages": contents, "rulesDiff": {}})
    while held:
        waiting = held.pop()
        reply(waiting, {"messages": waiting["job"]["contents"], "rulesDiff": {}})
'''

SILENT_WORKER = '''
import sys

sys.stderr.write("cannot start\\n")
sys.exit(1)
'''


@pytest.fixture
def worker_command(tmp_path: Path):
    """Return a factory producing commands that run a stub worker script."""

    def _command(source: str = STUB_WORKER) -> list[str]:
        script = tmp_path / f"worker_{abs(hash(source))}.py"
        script.write_text(source, encoding="utf-8")
        return [sys.executable, str(script)]

    return _command


@pytest.fixture
def silent_worker_source() -> str:
    return SILENT_WORKER
