# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for settings models, layered TOML loading and change notification."""

from __future__ import annotations

from pathlib import Path

import pytest

from eslint_relay.config import (
    ConfigProvider,
    EngineConfig,
    RelaySettings,
    expand_env,
    load_settings,
    rule_list,
)
from eslint_relay.errors import ConfigError


def test_engine_config_defaults() -> None:
    config = EngineConfig()

    assert config.use_global_eslint is False
    assert config.global_node_path is None
    assert config.disable_when_no_eslint_config is True


def test_engine_config_accepts_camel_case_aliases() -> None:
    config = EngineConfig.model_validate({"useGlobalEslint": True, "eslintRulesDir": "rules"})

    assert config.use_global_eslint is True
    assert config.eslint_rules_dir == "rules"
    assert config.model_dump(by_alias=True)["disableEslintIgnore"] is False


def test_expand_env_substitutes_known_variables() -> None:
    env = {"HOME": "/home/dev", "RULES": "lint-rules"}

    assert expand_env("$HOME/.eslintrc", env) == "/home/dev/.eslintrc"
    assert expand_env("${RULES}/custom", env) == "lint-rules/custom"
    assert expand_env("$MISSING/x", env) == "$MISSING/x"


def test_load_settings_layers_user_and_project(tmp_path: Path) -> None:
    user = tmp_path / "user.toml"
    user.write_text(
        'fix-on-save = true\nignored-rules-when-modified = ["no-unused-vars"]\n',
        encoding="utf-8",
    )
    root = tmp_path / "repo"
    root.mkdir()
    (root / "pyproject.toml").write_text(
        '[tool.eslint-relay.engine]\nuse-global-eslint = true\nglobal-node-path = "$NODE_HOME"\n',
        encoding="utf-8",
    )
    (root / ".eslint-relay.toml").write_text("fix-on-save = false\n", encoding="utf-8")

    settings = load_settings(root, user_config=user, env={"NODE_HOME": "/opt/node"})

    assert settings.fix_on_save is False
    assert settings.ignored_rules_when_modified == ("no-unused-vars",)
    assert settings.engine.use_global_eslint is True
    assert settings.engine.global_node_path == "/opt/node"


def test_load_settings_without_files_returns_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path, user_config=tmp_path / "absent.toml")

    assert settings == RelaySettings()


def test_load_settings_rejects_unknown_keys(tmp_path: Path) -> None:
    (tmp_path / ".eslint-relay.toml").write_text("fix-everything = true\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(tmp_path, user_config=tmp_path / "absent.toml")


def test_load_settings_reports_invalid_toml(tmp_path: Path) -> None:
    (tmp_path / ".eslint-relay.toml").write_text("fix-on-save = [\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(tmp_path, user_config=tmp_path / "absent.toml")


def test_provider_update_notifies_subscribers() -> None:
    provider = ConfigProvider()
    seen: list[RelaySettings] = []
    unsubscribe = provider.subscribe(seen.append)

    updated = provider.update(engine={"disable_eslint_ignore": True}, fix_on_save=True)

    assert updated.engine.disable_eslint_ignore is True
    assert provider.job_config().disable_eslint_ignore is True
    assert seen == [updated]

    unsubscribe()
    provider.update(show_rule=False)
    assert len(seen) == 1


def test_provider_update_validates() -> None:
    provider = ConfigProvider()

    with pytest.raises(ConfigError):
        provider.update(engine={"unknown_option": 1})
    assert provider.settings == RelaySettings()


def test_rule_list_strips_and_dedupes() -> None:
    assert rule_list([" semi ", "", "semi", "quotes"]) == ("semi", "quotes")
