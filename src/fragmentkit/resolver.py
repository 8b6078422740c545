"""Fragment load-order resolution and tier grouping.

compute_load_order() performs a stable topological sort: among the fragments
whose dependencies are all loaded, the one that appears first in the input
(scan order) is always taken next. Disabled fragments are removed before
ordering and never satisfy a dependency.

Cycles, missing dependencies and duplicate ids are configuration errors. They
always raise; a partial order is never returned.
"""

from __future__ import annotations

import heapq
import warnings
from collections import defaultdict
from collections.abc import Iterable

from fragmentkit.models import FragmentDescriptor, LoadOrderResult, Tier
from fragmentkit.scan.parser import tier_from_name

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigurationError(ValueError):
    """Fragment set cannot be ordered as declared."""


class MissingDependencyError(ConfigurationError):
    """One or more fragments depend on an id that is absent or disabled."""

    def __init__(self, missing: dict[str, list[str]], disabled: Iterable[str] = ()) -> None:
        self.missing = missing
        self.disabled = {d.lower() for d in disabled}
        lines = []
        for fragment_id, deps in missing.items():
            for dep in deps:
                reason = "is disabled" if dep.lower() in self.disabled else "was not found"
                lines.append(f"  '{fragment_id}' depends on '{dep}', which {reason}")
        super().__init__("Unresolved fragment dependencies:\n" + "\n".join(lines))


class DependencyCycleError(ConfigurationError):
    """The dependency graph contains at least one cycle."""

    def __init__(self, stuck: list[str], cycle: list[str]) -> None:
        self.stuck = stuck
        self.cycle = cycle
        message = f"Dependency cycle among fragments: {', '.join(stuck)}"
        if cycle:
            message += f"\n  cycle: {' -> '.join(cycle)}"
        super().__init__(message)


class DuplicateFragmentError(ConfigurationError):
    """Two or more fragments share an id."""

    def __init__(self, duplicates: list[str]) -> None:
        self.duplicates = duplicates
        super().__init__(f"Duplicate fragment ids: {', '.join(duplicates)}")


class LoadOrderFallbackWarning(UserWarning):
    """plan_load() fell back to tier-only ordering. *error* is what it fell back from."""

    def __init__(self, error: ConfigurationError) -> None:
        self.error = error
        super().__init__(f"{error}\n  Falling back to tier-only load order.")


# ---------------------------------------------------------------------------
# Load order
# ---------------------------------------------------------------------------


def _check_duplicates(fragments: list[FragmentDescriptor]) -> None:
    seen: set[str] = set()
    duplicates: list[str] = []
    for fragment in fragments:
        key = fragment.id.lower()
        if key in seen and fragment.id not in duplicates:
            duplicates.append(fragment.id)
        seen.add(key)
    if duplicates:
        raise DuplicateFragmentError(duplicates)


def _find_cycle(pending: dict[int, set[int]], fragments: list[FragmentDescriptor]) -> list[str]:
    """Return one cycle (as ids, first id repeated at the end) in the stuck subgraph."""
    state: dict[int, int] = {}  # 1 = on stack, 2 = done
    stack: list[int] = []

    def visit(node: int) -> list[int] | None:
        state[node] = 1
        stack.append(node)
        for dep in sorted(pending.get(node, ())):
            if state.get(dep) == 1:
                return stack[stack.index(dep):] + [dep]
            if dep not in state:
                found = visit(dep)
                if found:
                    return found
        stack.pop()
        state[node] = 2
        return None

    for start in sorted(pending):
        if start not in state:
            cycle = visit(start)
            if cycle:
                return [fragments[i].id for i in cycle]
    return []


def compute_load_order(
    fragments: Iterable[FragmentDescriptor],
    disabled_ids: Iterable[str] = (),
) -> LoadOrderResult:
    """Order *fragments* so that every fragment follows all of its dependencies.

    Args:
        fragments: Fragments in scan order; ties are broken by this order.
        disabled_ids: Fragment ids to exclude (case-insensitive).

    Returns:
        LoadOrderResult with the ordered active fragments and the disabled ones.

    Raises:
        DuplicateFragmentError: if two fragments share an id.
        MissingDependencyError: if a dependency is absent or disabled.
        DependencyCycleError: if the dependencies contain a cycle.
    """
    fragments = list(fragments)
    _check_duplicates(fragments)

    disabled_keys = {d.lower() for d in disabled_ids}
    active = [f for f in fragments if f.id.lower() not in disabled_keys]
    disabled = [f for f in fragments if f.id.lower() in disabled_keys]

    index = {f.id.lower(): i for i, f in enumerate(active)}

    missing: dict[str, list[str]] = {}
    for fragment in active:
        unresolved = sorted(d for d in fragment.dependencies if d.lower() not in index)
        if unresolved:
            missing[fragment.id] = unresolved
    if missing:
        raise MissingDependencyError(missing, disabled=disabled_keys)

    pending: dict[int, set[int]] = {
        i: {index[d.lower()] for d in f.dependencies} for i, f in enumerate(active)
    }
    dependents: dict[int, list[int]] = defaultdict(list)
    for i, deps in pending.items():
        for dep in deps:
            dependents[dep].append(i)

    ready = [i for i, deps in pending.items() if not deps]
    heapq.heapify(ready)

    ordered: list[FragmentDescriptor] = []
    while ready:
        current = heapq.heappop(ready)
        ordered.append(active[current])
        for dependent in dependents[current]:
            pending[dependent].discard(current)
            if not pending[dependent]:
                heapq.heappush(ready, dependent)

    if len(ordered) < len(active):
        stuck_nodes = {i: deps for i, deps in pending.items() if deps}
        stuck = [active[i].id for i in sorted(stuck_nodes)]
        raise DependencyCycleError(stuck, _find_cycle(stuck_nodes, active))

    return LoadOrderResult(ordered=ordered, disabled=disabled)


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def resolve_tier(fragment: FragmentDescriptor) -> Tier:
    """Bootstrap is always core; otherwise explicit declaration, then filename, then optional."""
    if fragment.is_bootstrap:
        return Tier.CORE
    if fragment.tier is not None:
        return fragment.tier
    return tier_from_name(fragment.id) or Tier.OPTIONAL


def group_by_tier(
    fragments: Iterable[FragmentDescriptor],
    exclude_bootstrap: bool = False,
) -> dict[Tier, list[FragmentDescriptor]]:
    """Classify *fragments* by tier, preserving input order inside each tier.

    Every tier key is present, in load order. With *exclude_bootstrap* the
    bootstrap fragment is left out entirely since the caller sources it first.
    """
    groups: dict[Tier, list[FragmentDescriptor]] = {tier: [] for tier in Tier}
    for fragment in fragments:
        if exclude_bootstrap and fragment.is_bootstrap:
            continue
        groups[resolve_tier(fragment)].append(fragment)
    return groups


def plan_load(
    fragments: Iterable[FragmentDescriptor],
    disabled_ids: Iterable[str] = (),
    *,
    strict: bool = True,
) -> list[FragmentDescriptor]:
    """Return the fragments to source, in order.

    In strict mode configuration errors propagate. Otherwise they are reported
    as a LoadOrderFallbackWarning and the active fragments are returned in
    tier batches (core first) instead.
    """
    fragments = list(fragments)
    disabled_ids = list(disabled_ids)
    try:
        return compute_load_order(fragments, disabled_ids).ordered
    except ConfigurationError as exc:
        if strict:
            raise
        warnings.warn(LoadOrderFallbackWarning(exc), stacklevel=2)

    disabled_keys = {d.lower() for d in disabled_ids}
    active = [f for f in fragments if f.id.lower() not in disabled_keys]
    groups = group_by_tier(active)
    return [fragment for tier in Tier for fragment in groups[tier]]
