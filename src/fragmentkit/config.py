"""fragmentkit configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (FRAGMENTKIT_DEBUG, FRAGMENTKIT_CACHE_DIR,
                             FRAGMENTKIT_DISABLED)
  3. Per-project fragmentkit.yaml
  4. Global ~/.fragmentkit/config.yaml
  5. Hardcoded defaults

All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from fragmentkit.cache.backing import CACHE_DIR_ENV
from fragmentkit.cache.parsing import PARSING_MODES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".fragmentkit"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "fragmentkit.yaml"

DEBUG_ENV = "FRAGMENTKIT_DEBUG"
DISABLED_ENV = "FRAGMENTKIT_DISABLED"

_TRUTHY: frozenset[str] = frozenset(["1", "true", "yes", "on"])

# Known top-level sections — unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["fragments", "cache", "debug"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class FragmentsCfg:
    """Fragment discovery and ordering (fragmentkit.yaml: fragments:).

    Attributes:
        directory: Directory holding the fragment files.
        pattern: Glob for fragment files inside *directory*.
        disabled: Fragment ids never loaded.
        strict: Abort on dependency errors instead of falling back to tiers.
    """

    directory: str = "profile.d"
    pattern: str = "*.ps1"
    disabled: list[str] = field(default_factory=list)
    strict: bool = True


@dataclass
class CacheCfg:
    """Parse cache settings (fragmentkit.yaml: cache:)."""

    enabled: bool = True  # False = in-memory only
    directory: str | None = None  # None = default user cache dir
    parsing_modes: list[str] = field(default_factory=lambda: list(PARSING_MODES))


@dataclass
class FragmentkitConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    fragments: FragmentsCfg = field(default_factory=FragmentsCfg)
    cache: CacheCfg = field(default_factory=CacheCfg)
    debug: bool = False


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _as_str_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(
            f"{name} must be a list of fragment ids, got {type(value).__name__}.\n"
            f"  Example:\n"
            f"    {name.split('.')[-1]}:\n"
            f"      - 80-experimental"
        )
    return [str(v) for v in value]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _validate_parsing_modes(modes: list[str]) -> None:
    unknown = [m for m in modes if m not in PARSING_MODES]
    if unknown:
        raise ConfigError(
            f"cache.parsing_modes contains unknown mode(s): {', '.join(unknown)}\n"
            f"  Allowed: {', '.join(PARSING_MODES)}"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> FragmentkitConfig:
    """Build a *FragmentkitConfig* from a merged raw YAML dict."""
    cfg = FragmentkitConfig()

    if "fragments" in data:
        f = data["fragments"] or {}
        cfg.fragments = FragmentsCfg(
            directory=str(f.get("directory", cfg.fragments.directory)),
            pattern=str(f.get("pattern", cfg.fragments.pattern)),
            disabled=_as_str_list(f.get("disabled"), "fragments.disabled"),
            strict=_as_bool(f.get("strict", cfg.fragments.strict)),
        )

    if "cache" in data:
        c = data["cache"] or {}
        modes = c.get("parsing_modes")
        cfg.cache = CacheCfg(
            enabled=_as_bool(c.get("enabled", cfg.cache.enabled)),
            directory=c.get("directory") or cfg.cache.directory,
            parsing_modes=(
                _as_str_list(modes, "cache.parsing_modes")
                if modes is not None
                else list(cfg.cache.parsing_modes)
            ),
        )
        _validate_parsing_modes(cfg.cache.parsing_modes)

    if "debug" in data:
        cfg.debug = _as_bool(data["debug"])

    return cfg


def _apply_env_overrides(cfg: FragmentkitConfig) -> FragmentkitConfig:
    """Apply FRAGMENTKIT_* environment variable overrides (layer 2)."""
    if (debug := os.environ.get(DEBUG_ENV)) is not None:
        cfg.debug = debug.strip().lower() in _TRUTHY
    if cache_dir := os.environ.get(CACHE_DIR_ENV):
        cfg.cache.directory = cache_dir
    if disabled := os.environ.get(DISABLED_ENV):
        extra = [d.strip() for d in disabled.split(",") if d.strip()]
        known = {d.lower() for d in cfg.fragments.disabled}
        cfg.fragments.disabled.extend(d for d in extra if d.lower() not in known)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FragmentkitConfig:
    """Load and return a merged *FragmentkitConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *fragmentkit.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *FragmentkitConfig* with env var overrides applied.

    Raises:
        ConfigError: If a list-valued key is not a list or a parsing mode is unknown.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    return cfg
