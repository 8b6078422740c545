"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

import fragmentkit.config as config_module
from fragmentkit.db.connection import Database
from fragmentkit.db.schema import initialize


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep the user's config, env vars and CWD out of every test."""
    for var in ("FRAGMENTKIT_DEBUG", "FRAGMENTKIT_CACHE_DIR", "FRAGMENTKIT_DISABLED", "XDG_CACHE_HOME"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        config_module, "_GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml"
    )
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based cache DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "fragment-cache.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def fragments_dir(tmp_path) -> Path:
    d = tmp_path / "profile.d"
    d.mkdir()
    return d

