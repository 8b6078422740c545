"""Tests for fragmentkit config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from fragmentkit.config import ConfigError, FragmentkitConfig, load_config


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# Defaults — no config files present
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    """No config files → all hardcoded defaults."""
    missing_global = tmp_path / "nonexistent" / "config.yaml"
    cfg = load_config(project_dir=tmp_path, global_config_path=missing_global)

    assert cfg.fragments.directory == "profile.d"
    assert cfg.fragments.pattern == "*.ps1"
    assert cfg.fragments.disabled == []
    assert cfg.fragments.strict is True
    assert cfg.cache.enabled is True
    assert cfg.cache.directory is None
    assert cfg.cache.parsing_modes == ["regex", "ast"]
    assert cfg.debug is False


def test_defaults_match_dataclass(tmp_path: Path) -> None:
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg == FragmentkitConfig()


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_global_config_applied(tmp_path: Path) -> None:
    global_path = tmp_path / "global" / "config.yaml"
    _write_yaml(global_path, {"cache": {"directory": "/var/cache/frag"}, "debug": True})
    cfg = load_config(project_dir=tmp_path, global_config_path=global_path)
    assert cfg.cache.directory == "/var/cache/frag"
    assert cfg.debug is True


def test_project_overrides_global(tmp_path: Path) -> None:
    global_path = tmp_path / "global" / "config.yaml"
    _write_yaml(global_path, {"fragments": {"directory": "global.d", "strict": True}})
    _write_yaml(tmp_path / "fragmentkit.yaml", {"fragments": {"strict": False}})
    cfg = load_config(project_dir=tmp_path, global_config_path=global_path)
    assert cfg.fragments.directory == "global.d"
    assert cfg.fragments.strict is False


def test_project_disabled_list(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"fragments": {"disabled": ["80-media", "games"]}})
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.fragments.disabled == ["80-media", "games"]


def test_empty_yaml_file(tmp_path: Path) -> None:
    (tmp_path / "fragmentkit.yaml").write_text("", encoding="utf-8")
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg == FragmentkitConfig()


def test_defaults_to_cwd(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"fragments": {"directory": "here.d"}})
    cfg = load_config(global_config_path=tmp_path / "none.yaml")
    assert cfg.fragments.directory == "here.d"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_disabled_must_be_list(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"fragments": {"disabled": "80-media"}})
    with pytest.raises(ConfigError, match="fragments.disabled must be a list"):
        load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")


def test_unknown_parsing_mode_rejected(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"cache": {"parsing_modes": ["regex", "tokens"]}})
    with pytest.raises(ConfigError, match="tokens"):
        load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"plugins": {}})
    with pytest.warns(UserWarning, match="plugins"):
        load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")


def test_known_keys_do_not_warn(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "fragmentkit.yaml",
        {"fragments": {"strict": True}, "cache": {"enabled": False}, "debug": False},
    )
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.cache.enabled is False


def test_string_booleans(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"fragments": {"strict": "no"}, "debug": "yes"})
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.fragments.strict is False
    assert cfg.debug is True


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(("value", "expected"), [("1", True), ("true", True), ("0", False), ("", False)])
def test_env_debug(tmp_path: Path, monkeypatch, value: str, expected: bool) -> None:
    monkeypatch.setenv("FRAGMENTKIT_DEBUG", value)
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.debug is expected


def test_env_debug_overrides_file(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"debug": True})
    monkeypatch.setenv("FRAGMENTKIT_DEBUG", "off")
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.debug is False


def test_env_cache_dir(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"cache": {"directory": "/from/file"}})
    monkeypatch.setenv("FRAGMENTKIT_CACHE_DIR", "/from/env")
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.cache.directory == "/from/env"


def test_env_disabled_appends(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "fragmentkit.yaml", {"fragments": {"disabled": ["games"]}})
    monkeypatch.setenv("FRAGMENTKIT_DISABLED", "media, GAMES ,kube")
    cfg = load_config(project_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.fragments.disabled == ["games", "media", "kube"]
