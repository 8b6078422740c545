"""fragmentkit cache CLI commands.

Commands:
  fragmentkit cache stats       — in-memory / on-disk entry counts
  fragmentkit cache clear       — delete every cached entry
  fragmentkit cache build [DIR] — parse all fragments to warm the cache
  fragmentkit cache validate    — integrity check + stale entry report
  fragmentkit cache optimize    — VACUUM + ANALYZE the cache database
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from fragmentkit.cache.backing import default_cache_path
from fragmentkit.cache.parsing import last_write_ticks, warm_cache
from fragmentkit.cache.store import FragmentCache
from fragmentkit.cli.errors import (
    err_cache_unavailable,
    err_config,
    err_no_fragments_dir,
    warn_cache_unavailable,
    warn_fragment_skipped,
)
from fragmentkit.config import ConfigError, FragmentkitConfig, load_config
from fragmentkit.models import FragmentDescriptor
from fragmentkit.scan.parser import scan_fragments

console = Console()

cache_app = typer.Typer(
    name="cache",
    help="Inspect and maintain the fragment parse cache.",
    add_completion=False,
)

_CacheDirOption = Annotated[
    Path | None,
    typer.Option("--cache-dir", help="Cache root directory (overrides config and env)."),
]


@cache_app.command("stats")
def cache_stats_cmd(
    cache_dir: _CacheDirOption = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print stats as JSON.")] = False,
) -> None:
    """Show cache statistics."""
    cfg = _load_config_or_exit()
    with _open_cache(cfg, cache_dir) as cache:
        stats = cache.get_stats()

    if as_json:
        typer.echo(json.dumps(stats.as_dict(), indent=2))
        return

    backing = "[green]✓ available[/]" if stats.sqlite_available else "[yellow]✗ unavailable[/]"
    lines = [
        f"Database:  {stats.db_path or '(disabled)'}",
        f"SQLite:    {backing}",
    ]
    if stats.sqlite_available:
        lines.append(
            f"Stored:    [bold]{stats.persistent_content_entries}[/] content  |  "
            f"[bold]{stats.persistent_ast_entries}[/] ast"
        )
    elif stats.unavailable_reason:
        lines.append(f"Reason:    [dim]{stats.unavailable_reason}[/]")
    console.print(Panel("\n".join(lines), title="[bold]Fragment Cache[/]", expand=False))


@cache_app.command("clear")
def cache_clear_cmd(cache_dir: _CacheDirOption = None) -> None:
    """Delete every cached entry (in memory and on disk)."""
    cfg = _load_config_or_exit()
    with _open_cache(cfg, cache_dir) as cache:
        before = cache.get_stats()
        cache.clear()
        after = cache.get_stats()

    if not before.sqlite_available:
        console.print(warn_cache_unavailable(str(before.db_path), before.unavailable_reason))
        return
    removed = (before.persistent_content_entries or 0) + (before.persistent_ast_entries or 0)
    console.print(f"[green]✓[/] Cleared {removed} cached entries from {after.db_path}")


@cache_app.command("build")
def cache_build_cmd(
    directory: Annotated[
        Path | None,
        typer.Argument(help="Fragment directory (default: fragments.directory from config)."),
    ] = None,
    cache_dir: _CacheDirOption = None,
) -> None:
    """Parse every fragment in every configured mode so shell startup hits the cache."""
    cfg = _load_config_or_exit()
    fragments = _scan_or_exit(directory, cfg)
    with _open_cache(cfg, cache_dir) as cache:
        warmed = warm_cache(fragments, cache, cfg.cache.parsing_modes)
        stats = cache.get_stats()

    if not stats.sqlite_available:
        console.print(warn_cache_unavailable(str(stats.db_path), stats.unavailable_reason))
    console.print(
        f"[green]✓[/] Cached {warmed} parses for {len(fragments)} fragments "
        f"({', '.join(cfg.cache.parsing_modes)})"
    )


@cache_app.command("validate")
def cache_validate_cmd(
    directory: Annotated[
        Path | None,
        typer.Argument(help="Fragment directory to check coverage against."),
    ] = None,
    cache_dir: _CacheDirOption = None,
    prune: Annotated[
        bool, typer.Option("--prune", help="Delete entries for changed or deleted files.")
    ] = False,
) -> None:
    """Check cache database integrity and report stale or missing entries."""
    cfg = _load_config_or_exit()
    with _open_cache(cfg, cache_dir) as cache:
        repo = cache.repository()
        if repo is None:
            stats = cache.get_stats()
            console.print(err_cache_unavailable(str(stats.db_path), stats.unavailable_reason))
            raise typer.Exit(1)

        integrity = repo.integrity_check()
        if integrity != ["ok"]:
            console.print("[red]Error:[/] Cache database failed integrity check:")
            for message in integrity:
                console.print(f"    {message}")
            console.print("  Run:  fragmentkit cache clear")
            raise typer.Exit(1)

        fragments = _scan_or_exit(directory, cfg)
        orphaned = [p for p in repo.list_paths() if not Path(p).exists()]
        pruned = 0
        if prune:
            for path in repo.list_paths():
                if path in orphaned:
                    pruned += repo.prune_path(path)
                else:
                    pruned += repo.prune_path(path, keep_ticks=last_write_ticks(Path(path)))

        uncached: list[str] = []
        for fragment in fragments:
            ticks = last_write_ticks(fragment.path)
            for mode in cfg.cache.parsing_modes:
                if cache.get_derived(fragment.path, ticks, mode) is None:
                    uncached.append(fragment.id)
                    break

    console.print("[green]✓[/] Integrity check passed")
    console.print(f"Orphaned paths: [bold]{len(orphaned)}[/]")
    console.print(f"Uncached fragments: [bold]{len(uncached)}[/]")
    if uncached:
        console.print(f"  [dim]{', '.join(uncached)}[/]\n  Run:  fragmentkit cache build")
    if prune:
        console.print(f"Pruned rows: [bold]{pruned}[/]")


@cache_app.command("optimize")
def cache_optimize_cmd(cache_dir: _CacheDirOption = None) -> None:
    """Compact the cache database (VACUUM + ANALYZE)."""
    cfg = _load_config_or_exit()
    with _open_cache(cfg, cache_dir) as cache:
        repo = cache.repository()
        if repo is None:
            stats = cache.get_stats()
            console.print(err_cache_unavailable(str(stats.db_path), stats.unavailable_reason))
            raise typer.Exit(1)
        size_before = cache.db_path.stat().st_size
        repo.optimize()
        size_after = cache.db_path.stat().st_size

    console.print(
        f"[green]✓[/] Optimized {cache.db_path} "
        f"({size_before / 1024:.1f} KB → {size_after / 1024:.1f} KB)"
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_config_or_exit() -> FragmentkitConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def _open_cache(cfg: FragmentkitConfig, cache_dir: Path | None) -> FragmentCache:
    root = cache_dir if cache_dir is not None else cfg.cache.directory
    return FragmentCache(
        default_cache_path(root),
        persistent=cfg.cache.enabled,
        debug=cfg.debug,
    )


def _scan_or_exit(directory: Path | None, cfg: FragmentkitConfig) -> list[FragmentDescriptor]:
    fragments_dir = directory if directory is not None else Path(cfg.fragments.directory)
    if not fragments_dir.is_dir():
        console.print(err_no_fragments_dir(str(fragments_dir)))
        raise typer.Exit(1)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        fragments = scan_fragments(fragments_dir, cfg.fragments.pattern)
    for w in caught:
        console.print(warn_fragment_skipped(str(w.message)))
    return fragments
