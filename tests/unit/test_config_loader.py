"""Unit tests for YAMLConfigLoader."""

from __future__ import annotations

from pathlib import Path

import pytest

from autobot.config.loader import ConfigLoadError, YAMLConfigLoader


def test_resolve_path_uses_env_first(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTOBOT_CONFIG", "/tmp/from-env.yaml")
    resolved = YAMLConfigLoader.resolve_path("/tmp/from-cli.yaml")
    assert str(resolved).endswith("from-env.yaml")


def test_resolve_path_uses_cli_when_env_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AUTOBOT_CONFIG", raising=False)
    resolved = YAMLConfigLoader.resolve_path("/tmp/from-cli.yaml")
    assert str(resolved).endswith("from-cli.yaml")


def test_resolve_path_defaults_to_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("AUTOBOT_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    assert YAMLConfigLoader.resolve_path() == tmp_path / "autobot.yaml"


def test_load_dict_missing_file_returns_empty(tmp_path: Path) -> None:
    assert YAMLConfigLoader.load_dict(tmp_path / "missing.yaml") == {}


def test_load_dict_empty_file_returns_empty(tmp_path: Path) -> None:
    target = tmp_path / "autobot.yaml"
    target.write_text("", encoding="utf-8")
    assert YAMLConfigLoader.load_dict(target) == {}


def test_load_dict_returns_mapping(tmp_path: Path) -> None:
    target = tmp_path / "autobot.yaml"
    target.write_text("api:\n  port: 4100\n", encoding="utf-8")
    assert YAMLConfigLoader.load_dict(target)["api"]["port"] == 4100


def test_load_dict_yaml_error_has_line_column(tmp_path: Path) -> None:
    target = tmp_path / "autobot.yaml"
    target.write_text("api:\n  port: [\n", encoding="utf-8")
    with pytest.raises(ConfigLoadError) as exc_info:
        YAMLConfigLoader.load_dict(target)
    assert "autobot.yaml" in str(exc_info.value)


def test_load_dict_rejects_non_mapping_root(tmp_path: Path) -> None:
    target = tmp_path / "autobot.yaml"
    target.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigLoadError, match="mapping"):
        YAMLConfigLoader.load_dict(target)


def test_dump_default_round_trips_through_load(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "autobot.yaml"
    YAMLConfigLoader.dump_default(target, {"scheduler": {"max_slots": 7}})
    assert YAMLConfigLoader.load_dict(target) == {"scheduler": {"max_slots": 7}}
