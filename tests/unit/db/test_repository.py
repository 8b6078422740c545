"""Tests for CacheRepository."""

from __future__ import annotations

import pytest

from fragmentkit.db.repository import CacheRepository


@pytest.fixture
def repo(tmp_db):
    return CacheRepository(tmp_db)


# ------------------------------------------------------------------
# Content
# ------------------------------------------------------------------


def test_upsert_and_get_content(repo):
    repo.upsert_content("/p/git.ps1", 100, "regex", "function Get-Git {}")
    entry = repo.get_content("/p/git.ps1", 100, "regex")
    assert entry is not None
    assert entry.content == "function Get-Git {}"
    assert entry.cached_at is not None


def test_get_content_not_found(repo):
    assert repo.get_content("/p/none.ps1", 1, "regex") is None


def test_get_content_requires_exact_key(repo):
    repo.upsert_content("/p/git.ps1", 100, "regex", "x")
    assert repo.get_content("/p/git.ps1", 101, "regex") is None
    assert repo.get_content("/p/git.ps1", 100, "ast") is None
    assert repo.get_content("/p/other.ps1", 100, "regex") is None


def test_upsert_content_overwrites(repo):
    repo.upsert_content("/p/git.ps1", 100, "regex", "old")
    repo.upsert_content("/p/git.ps1", 100, "regex", "new")
    assert repo.get_content("/p/git.ps1", 100, "regex").content == "new"
    assert repo.count_content() == 1


# ------------------------------------------------------------------
# Derived
# ------------------------------------------------------------------


def test_upsert_and_get_derived_preserves_order(repo):
    names = ["Invoke-Zeta", "Get-Alpha", "Set-Mid"]
    repo.upsert_derived("/p/git.ps1", 7, "ast", names)
    entry = repo.get_derived("/p/git.ps1", 7, "ast")
    assert entry is not None
    assert entry.value == names


def test_upsert_derived_structured_record(repo):
    record = {"functions": ["a", "b"], "aliases": {"g": "git"}}
    repo.upsert_derived("/p/git.ps1", 7, "ast", record)
    assert repo.get_derived("/p/git.ps1", 7, "ast").value == record


def test_upsert_derived_rejects_non_json(repo):
    with pytest.raises(TypeError):
        repo.upsert_derived("/p/git.ps1", 7, "ast", {object()})
    assert repo.count_derived() == 0


def test_counts_are_per_table(repo):
    repo.upsert_content("/p/a.ps1", 1, "regex", "a")
    repo.upsert_content("/p/b.ps1", 1, "regex", "b")
    repo.upsert_derived("/p/a.ps1", 1, "regex", [])
    assert repo.count_content() == 2
    assert repo.count_derived() == 1


# ------------------------------------------------------------------
# Maintenance
# ------------------------------------------------------------------


def test_clear(repo):
    repo.upsert_content("/p/a.ps1", 1, "regex", "a")
    repo.upsert_derived("/p/a.ps1", 1, "regex", ["f"])
    repo.clear()
    assert repo.count_content() == 0
    assert repo.count_derived() == 0


def test_list_paths(repo):
    repo.upsert_content("/p/b.ps1", 1, "regex", "b")
    repo.upsert_derived("/p/a.ps1", 1, "ast", [])
    repo.upsert_content("/p/a.ps1", 1, "regex", "a")
    assert repo.list_paths() == ["/p/a.ps1", "/p/b.ps1"]


def test_prune_path_keeps_current_ticks(repo):
    repo.upsert_content("/p/a.ps1", 1, "regex", "old")
    repo.upsert_content("/p/a.ps1", 2, "regex", "new")
    repo.upsert_derived("/p/a.ps1", 1, "ast", ["old"])
    deleted = repo.prune_path("/p/a.ps1", keep_ticks=2)
    assert deleted == 2
    assert repo.get_content("/p/a.ps1", 2, "regex").content == "new"
    assert repo.count_derived() == 0


def test_prune_path_all(repo):
    repo.upsert_content("/p/a.ps1", 1, "regex", "a")
    repo.upsert_content("/p/b.ps1", 1, "regex", "b")
    assert repo.prune_path("/p/a.ps1") == 1
    assert repo.list_paths() == ["/p/b.ps1"]


def test_optimize_and_integrity(repo):
    repo.upsert_content("/p/a.ps1", 1, "regex", "a" * 10_000)
    repo.clear()
    repo.optimize()
    assert repo.integrity_check() == ["ok"]
