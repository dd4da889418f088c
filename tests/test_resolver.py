# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for ESLint installation resolution and its caches."""

from __future__ import annotations

from pathlib import Path

import pytest

from eslint_relay.config import EngineConfig
from eslint_relay.discovery import find_nearest
from eslint_relay.errors import EngineLoadError, EngineNotFoundError, ResolutionError
from eslint_relay.process_utils import SubprocessExecutionError
from eslint_relay.resolver import EngineHandle, NodeEngineLoader, PathResolver, global_engine_dir


class CountingFinder:
    def __init__(self) -> None:
        self.calls = 0

    def find(self, start_dir: Path, names):
        self.calls += 1
        return find_nearest(start_dir, names)


def _resolver(tmp_path: Path, loader, **kwargs) -> PathResolver:
    kwargs.setdefault("environ", {})
    kwargs.setdefault("bundled_engine_dir", tmp_path / "bundled" / "node_modules" / "eslint")
    kwargs.setdefault("platform", "linux")
    return PathResolver(loader=loader, **kwargs)


def test_resolves_project_engine(js_project: Path, loader_factory) -> None:
    engine_dir = js_project / "node_modules" / "eslint"
    environ: dict[str, str] = {}
    resolver = _resolver(js_project, loader_factory(engine_dir), environ=environ)

    handle = resolver.resolve(js_project / "src", EngineConfig())

    assert handle.engine_dir == engine_dir
    assert environ["NODE_PATH"] == str(js_project / "node_modules")
    assert resolver.last_modules_dir == js_project / "node_modules"


def test_walk_is_reused_for_same_directory(js_project: Path, loader_factory) -> None:
    finder = CountingFinder()
    loader = loader_factory(js_project / "node_modules" / "eslint")
    resolver = _resolver(js_project, loader, finder=finder)

    first = resolver.resolve(js_project / "src", EngineConfig())
    second = resolver.resolve(js_project / "src", EngineConfig())

    assert first is second
    assert finder.calls == 1
    assert loader.loads == [js_project / "node_modules" / "eslint"]
    assert loader.invalidations == 1


def test_switching_projects_refreshes_module_path(tmp_path: Path, loader_factory, engine_factory) -> None:
    first_engine = engine_factory(tmp_path / "a" / "node_modules" / "eslint")
    second_engine = engine_factory(tmp_path / "b" / "node_modules" / "eslint")
    environ: dict[str, str] = {}
    loader = loader_factory(first_engine, second_engine)
    resolver = _resolver(tmp_path, loader, environ=environ)

    assert resolver.resolve(tmp_path / "a", EngineConfig()).engine_dir == first_engine
    assert resolver.resolve(tmp_path / "b", EngineConfig()).engine_dir == second_engine
    assert environ["NODE_PATH"] == str(tmp_path / "b" / "node_modules")
    assert loader.invalidations == 2


def test_missing_node_modules_raises(tmp_path: Path, loader_factory) -> None:
    resolver = _resolver(tmp_path, loader_factory())

    with pytest.raises(EngineNotFoundError, match="Cannot find module `eslint`"):
        resolver.engine_from_directory(None, EngineConfig())


def test_falls_back_to_bundled_engine(tmp_path: Path, loader_factory) -> None:
    modules = tmp_path / "node_modules"
    modules.mkdir()
    bundled = tmp_path / "bundled" / "node_modules" / "eslint"
    resolver = _resolver(tmp_path, loader_factory(bundled), bundled_engine_dir=bundled)

    assert resolver.resolve(tmp_path, EngineConfig()).engine_dir == bundled


def test_fallback_failure_mentions_install_command(tmp_path: Path, loader_factory) -> None:
    (tmp_path / "node_modules").mkdir()
    resolver = _resolver(tmp_path, loader_factory())

    with pytest.raises(EngineNotFoundError, match="eslint-relay install"):
        resolver.resolve(tmp_path, EngineConfig())


def test_global_engine_uses_npm_prefix_once(tmp_path: Path, loader_factory) -> None:
    prefix = tmp_path / "global"
    engine_dir = prefix / "lib" / "node_modules" / "eslint"
    calls: list[list[str]] = []

    def runner(args):
        calls.append(list(args))
        return f"{prefix}\n"

    resolver = _resolver(tmp_path, loader_factory(engine_dir), runner=runner)
    config = EngineConfig(use_global_eslint=True)

    assert resolver.engine_from_directory(None, config).engine_dir == engine_dir
    assert resolver.node_prefix_path() == str(prefix)
    assert calls == [["npm", "get", "prefix"]]


def test_npm_prefix_is_queried_once_across_projects(tmp_path: Path, loader_factory, engine_factory) -> None:
    prefix = tmp_path / "global"
    engine_dir = engine_factory(prefix / "lib" / "node_modules" / "eslint")
    calls: list[list[str]] = []

    def runner(args):
        calls.append(list(args))
        return f"{prefix}\n"

    first = tmp_path / "one" / "src"
    second = tmp_path / "two" / "lib"
    for directory in (first, second):
        directory.mkdir(parents=True)
        (directory.parent / "node_modules").mkdir()
    resolver = _resolver(tmp_path, loader_factory(engine_dir), runner=runner)
    config = EngineConfig(use_global_eslint=True)

    assert resolver.resolve(first, config).engine_dir == engine_dir
    assert resolver.resolve(second, config).engine_dir == engine_dir
    assert resolver.resolve(first, config).engine_dir == engine_dir
    assert calls == [["npm", "get", "prefix"]]


def test_global_node_path_skips_npm(tmp_path: Path, loader_factory) -> None:
    engine_dir = tmp_path / "node_modules" / "eslint"

    def runner(args):
        raise AssertionError("npm must not be queried")

    resolver = _resolver(tmp_path, loader_factory(engine_dir), runner=runner, platform="win32")
    config = EngineConfig(use_global_eslint=True, global_node_path=str(tmp_path))

    assert resolver.engine_from_directory(None, config).engine_dir == engine_dir


def test_global_engine_missing_raises(tmp_path: Path, loader_factory) -> None:
    resolver = _resolver(tmp_path, loader_factory())
    config = EngineConfig(use_global_eslint=True, global_node_path=str(tmp_path))

    with pytest.raises(EngineNotFoundError, match="ESLint not found"):
        resolver.engine_from_directory(None, config)


def test_npm_prefix_failure_raises_resolution_error(tmp_path: Path, loader_factory) -> None:
    def runner(args):
        raise SubprocessExecutionError(args, 1, "", "boom")

    resolver = _resolver(tmp_path, loader_factory(), runner=runner, platform="win32")

    with pytest.raises(ResolutionError, match="npm get prefix"):
        resolver.node_prefix_path()


def test_global_engine_dir_layouts() -> None:
    prefix = Path("/opt/node")

    assert global_engine_dir(prefix, platform="linux") == Path("/opt/node/lib/node_modules/eslint")
    assert global_engine_dir(prefix, platform="win32") == Path("/opt/node/node_modules/eslint")


def test_node_engine_loader_requires_cli_script(tmp_path: Path, engine_factory) -> None:
    loader = NodeEngineLoader(node_executable="/usr/bin/node")

    with pytest.raises(EngineLoadError):
        loader.load(tmp_path / "missing")

    engine_dir = engine_factory(tmp_path / "eslint")
    handle = loader.load(engine_dir)
    assert handle == EngineHandle(engine_dir=engine_dir, node="/usr/bin/node", cli_script=engine_dir / "bin" / "eslint.js")
    assert loader.load(engine_dir) is handle


def test_engine_handle_command_replaces_placeholder(tmp_path: Path) -> None:
    handle = EngineHandle(engine_dir=tmp_path, node="node", cli_script=tmp_path / "bin" / "eslint.js")

    assert handle.command(["node", "a-b-c", "--stdin"]) == ["node", str(tmp_path / "bin" / "eslint.js"), "--stdin"]
