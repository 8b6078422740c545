"""fragmentkit rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from fragmentkit.cli.errors import err_no_fragments_dir
    console.print(err_no_fragments_dir("profile.d"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from fragmentkit.resolver import (
    DependencyCycleError,
    DuplicateFragmentError,
    MissingDependencyError,
)


def err_config(message: str) -> str:
    """Config file contains an invalid value."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix fragmentkit.yaml (or ~/.fragmentkit/config.yaml) and retry."
    )


def err_no_fragments_dir(path: str) -> str:
    """Fragment directory does not exist."""
    return (
        f"[red]Error:[/] Fragment directory not found: '{path}'\n"
        "  Pass the directory explicitly:  fragmentkit order <dir>\n"
        "  or set fragments.directory in fragmentkit.yaml."
    )


def err_missing_dependencies(exc: MissingDependencyError) -> str:
    """A fragment depends on an absent or disabled fragment."""
    lines = []
    for fragment_id, deps in exc.missing.items():
        for dep in deps:
            if dep.lower() in exc.disabled:
                fix = f"re-enable '{dep}' or remove it from '{fragment_id}' dependencies"
                lines.append(f"    '{fragment_id}' → '{dep}' (disabled): {fix}")
            else:
                fix = f"add '{dep}' or fix the declaration in '{fragment_id}'"
                lines.append(f"    '{fragment_id}' → '{dep}' (not found): {fix}")
    return (
        "[red]Error:[/] Unresolved fragment dependencies.\n"
        + "\n".join(lines)
        + "\n  Or run with --no-strict to fall back to tier-only ordering."
    )


def err_dependency_cycle(exc: DependencyCycleError) -> str:
    """The dependency declarations contain a cycle."""
    cycle = " → ".join(exc.cycle) if exc.cycle else ", ".join(exc.stuck)
    return (
        f"[red]Error:[/] Dependency cycle: {cycle}\n"
        "  Remove one of the '# Dependencies:' / '#Requires -Fragment' declarations\n"
        "  so the fragments no longer depend on each other."
    )


def err_duplicate_fragments(exc: DuplicateFragmentError) -> str:
    """Two fragment files share an id."""
    return (
        f"[red]Error:[/] Duplicate fragment ids: {', '.join(exc.duplicates)}\n"
        "  Fragment ids come from file names and must be unique (case-insensitive).\n"
        "  Rename one of the files."
    )


def warn_load_order_fallback(detail: str) -> str:
    """Load order fell back to tier batches."""
    return (
        "[yellow]Warning:[/] Dependency order could not be resolved.\n"
        + "\n".join(f"  {escape(line)}" for line in detail.splitlines())
        + "\n  Fragments are listed in tier order instead.\n"
        "  Fix the declarations above, or run with --strict to fail on them."
    )


def warn_fragment_skipped(detail: str) -> str:
    """A fragment file could not be read during the scan."""
    return (
        f"[yellow]Warning:[/] {escape(detail)}\n"
        "  Check the file permissions; fragments that depend on it will not resolve."
    )


def warn_cache_unavailable(db_path: str, reason: str | None) -> str:
    """Persistent cache tier could not be opened."""
    return (
        f"[yellow]Warning:[/] Cache database unavailable: '{db_path}'\n"
        f"  Reason: {reason or 'unknown'}\n"
        "  Results are kept in memory only. Check the directory permissions or set\n"
        "    export FRAGMENTKIT_CACHE_DIR=<writable dir>"
    )


def err_cache_unavailable(db_path: str, reason: str | None) -> str:
    """Command needs the persistent cache tier but it is unavailable."""
    return (
        f"[red]Error:[/] Cache database unavailable: '{db_path}'\n"
        f"  Reason: {reason or 'unknown'}\n"
        "  Check the directory permissions or set\n"
        "    export FRAGMENTKIT_CACHE_DIR=<writable dir>"
    )
