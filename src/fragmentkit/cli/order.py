"""fragmentkit order / tiers commands.

Commands:
  fragmentkit order [DIR]   — resolved load order of the fragments in DIR
  fragmentkit tiers [DIR]   — fragments grouped by tier
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from fragmentkit.cli.errors import (
    err_config,
    err_dependency_cycle,
    err_duplicate_fragments,
    err_missing_dependencies,
    err_no_fragments_dir,
    warn_fragment_skipped,
    warn_load_order_fallback,
)
from fragmentkit.config import ConfigError, FragmentkitConfig, load_config
from fragmentkit.models import FragmentDescriptor, Tier
from fragmentkit.resolver import (
    DependencyCycleError,
    DuplicateFragmentError,
    LoadOrderFallbackWarning,
    MissingDependencyError,
    group_by_tier,
    plan_load,
    resolve_tier,
)
from fragmentkit.scan.parser import scan_fragments

console = Console()


def order_cmd(
    directory: Annotated[
        Path | None,
        typer.Argument(help="Fragment directory (default: fragments.directory from config)."),
    ] = None,
    disable: Annotated[
        list[str] | None,
        typer.Option("--disable", "-d", help="Fragment id to exclude (repeatable)."),
    ] = None,
    strict: Annotated[
        bool | None,
        typer.Option(
            "--strict/--no-strict",
            help="Fail on dependency errors instead of falling back to tier order.",
        ),
    ] = None,
) -> None:
    """Show the order in which fragments will be loaded."""
    cfg = _load_config_or_exit()
    fragments = _scan_or_exit(directory, cfg)
    disabled = [*cfg.fragments.disabled, *(disable or [])]
    strict_mode = cfg.fragments.strict if strict is None else strict

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", LoadOrderFallbackWarning)
        try:
            ordered = plan_load(fragments, disabled, strict=strict_mode)
        except MissingDependencyError as exc:
            console.print(err_missing_dependencies(exc))
            raise typer.Exit(1)
        except DependencyCycleError as exc:
            console.print(err_dependency_cycle(exc))
            raise typer.Exit(1)
        except DuplicateFragmentError as exc:
            console.print(err_duplicate_fragments(exc))
            raise typer.Exit(1)

    for w in caught:
        if issubclass(w.category, LoadOrderFallbackWarning):
            console.print(warn_load_order_fallback(str(w.message.error)))

    table = Table(title="Load Order", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Fragment", style="bold")
    table.add_column("Tier")
    table.add_column("Depends on", style="dim")
    for position, fragment in enumerate(ordered, start=1):
        table.add_row(
            str(position),
            fragment.id,
            resolve_tier(fragment).value,
            ", ".join(sorted(fragment.dependencies)),
        )
    console.print(table)

    disabled_keys = {d.lower() for d in disabled}
    skipped = [f.id for f in fragments if f.id.lower() in disabled_keys]
    if skipped:
        console.print(f"[dim]Disabled: {', '.join(skipped)}[/]")


def tiers_cmd(
    directory: Annotated[
        Path | None,
        typer.Argument(help="Fragment directory (default: fragments.directory from config)."),
    ] = None,
    exclude_bootstrap: Annotated[
        bool,
        typer.Option("--exclude-bootstrap", help="Leave out the bootstrap fragment."),
    ] = False,
) -> None:
    """Show fragments grouped by load tier."""
    cfg = _load_config_or_exit()
    fragments = _scan_or_exit(directory, cfg)
    groups = group_by_tier(fragments, exclude_bootstrap=exclude_bootstrap)

    table = Table(title="Fragment Tiers", show_header=True, header_style="bold")
    table.add_column("Tier", style="bold")
    table.add_column("Count", justify="right")
    table.add_column("Fragments")
    for tier in Tier:
        members = groups[tier]
        table.add_row(tier.value, str(len(members)), ", ".join(f.id for f in members))
    console.print(table)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_config_or_exit() -> FragmentkitConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


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
