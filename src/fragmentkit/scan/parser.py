"""Fragment declaration parser.

Reads dependency and tier declarations from the leading comments of a
fragment file. Three forms are recognised:

    #Requires -Fragment 'bootstrap'
    # Dependencies: bootstrap, env
    # Tier: essential

Anything that does not match is treated as "no declaration". The resolver
never sees malformed input, only the absence of a declaration.

Usage:
    fragments = scan_fragments(Path("profile.d"))
    for fragment in fragments:
        print(fragment.id, sorted(fragment.dependencies), fragment.tier)
"""

from __future__ import annotations

import re
import warnings
from dataclasses import dataclass
from pathlib import Path

from fragmentkit.models import FragmentDescriptor, Tier

_REQUIRES_RE = re.compile(
    r"^[ \t]*#Requires[ \t]+-Fragment[ \t]+(?P<value>.+?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_DEPENDENCIES_RE = re.compile(
    r"^[ \t]*#[ \t]*Dependencies[ \t]*:(?P<value>.*)$",
    re.IGNORECASE | re.MULTILINE,
)
_TIER_RE = re.compile(
    r"^[ \t]*#[ \t]*Tier[ \t]*:(?P<value>.*)$",
    re.IGNORECASE | re.MULTILINE,
)
_ID_RE = re.compile(r"^[\w.-]+$")
_NUMERIC_PREFIX_RE = re.compile(r"^(\d{2})(?!\d)")

# Legacy filename convention: (low, high, tier), inclusive bounds
_PREFIX_RANGES: tuple[tuple[int, int, Tier], ...] = (
    (0, 9, Tier.CORE),
    (10, 29, Tier.ESSENTIAL),
    (30, 69, Tier.STANDARD),
    (70, 99, Tier.OPTIONAL),
)


@dataclass(frozen=True)
class Declarations:
    dependencies: tuple[str, ...] = ()
    tier: Tier | None = None


def _split_ids(value: str) -> list[str]:
    """Split a comma list like ``'a', "b", c`` or ``@('a','b')`` into ids."""
    value = value.strip()
    if value.startswith("@(") and value.endswith(")"):
        value = value[2:-1]
    ids = []
    for item in value.split(","):
        item = item.strip().strip("'\"").strip()
        if item and _ID_RE.match(item):
            ids.append(item)
    return ids


def parse_declarations(text: str) -> Declarations:
    """Extract dependency ids and an explicit tier from fragment source text.

    Dependencies keep first-seen order and are de-duplicated. Only the first
    ``# Tier:`` line counts; an unrecognised tier name is ignored.
    """
    found: list[tuple[int, str]] = []
    for match in _REQUIRES_RE.finditer(text):
        found.extend((match.start(), dep) for dep in _split_ids(match.group("value")))
    for match in _DEPENDENCIES_RE.finditer(text):
        found.extend((match.start(), dep) for dep in _split_ids(match.group("value")))
    found.sort(key=lambda item: item[0])

    dependencies: list[str] = []
    for _, dep in found:
        if dep not in dependencies:
            dependencies.append(dep)

    tier = None
    tier_match = _TIER_RE.search(text)
    if tier_match:
        tier = Tier.parse(tier_match.group("value"))

    return Declarations(dependencies=tuple(dependencies), tier=tier)


def tier_from_name(fragment_id: str) -> Tier | None:
    """Tier implied by a fragment's name, or None if the name carries no signal.

    Bootstrap fragments are always core. Otherwise a two-digit numeric prefix
    maps onto the legacy ranges (00-09 core ... 70-99 optional).
    """
    if FragmentDescriptor(id=fragment_id, path=Path(fragment_id)).is_bootstrap:
        return Tier.CORE

    match = _NUMERIC_PREFIX_RE.match(fragment_id)
    if not match:
        return None
    number = int(match.group(1))
    for low, high, tier in _PREFIX_RANGES:
        if low <= number <= high:
            return tier
    return None


def parse_fragment(path: Path) -> FragmentDescriptor:
    """Parse a single fragment file into a FragmentDescriptor.

    Args:
        path: Path to the fragment source file.

    Returns:
        FragmentDescriptor with the file stem as id and an absolute path.

    Raises:
        OSError: if the file cannot be read.
    """
    text = path.read_text(encoding="utf-8-sig", errors="replace")
    decl = parse_declarations(text)
    return FragmentDescriptor(
        id=path.stem,
        path=path.resolve(),
        dependencies=frozenset(decl.dependencies),
        tier=decl.tier,
    )


def scan_fragments(directory: Path, pattern: str = "*.ps1") -> list[FragmentDescriptor]:
    """Load every fragment matching *pattern* in *directory*, sorted by filename.

    Returns an empty list if the directory does not exist.
    Files that cannot be read are skipped with a UserWarning naming the file,
    so dependents do not fail later with a bare "was not found".
    """
    if not directory.is_dir():
        return []

    fragments = []
    for path in sorted(directory.glob(pattern), key=lambda p: p.name.lower()):
        if not path.is_file():
            continue
        try:
            fragments.append(parse_fragment(path))
        except OSError as exc:
            warnings.warn(f"Skipping fragment '{path.name}': {exc}", UserWarning, stacklevel=2)
    return fragments
