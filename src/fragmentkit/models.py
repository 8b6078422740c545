"""Domain models for fragment scanning and load ordering."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# "bootstrap", "00-bootstrap", "00_Bootstrap"
_BOOTSTRAP_RE = re.compile(r"^(?:\d{2}[-_])?bootstrap$", re.IGNORECASE)


class Tier(str, Enum):
    """Coarse loading-priority bucket. Declaration order is load order."""

    CORE = "core"
    ESSENTIAL = "essential"
    STANDARD = "standard"
    OPTIONAL = "optional"

    @property
    def rank(self) -> int:
        return list(Tier).index(self)

    @classmethod
    def parse(cls, value: str | None) -> Tier | None:
        """Return the Tier named by *value* (case-insensitive), or None."""
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class FragmentDescriptor:
    id: str
    path: Path
    dependencies: frozenset[str] = field(default_factory=frozenset)
    tier: Tier | None = None  # explicit "# Tier:" declaration only

    @property
    def is_bootstrap(self) -> bool:
        return bool(_BOOTSTRAP_RE.match(self.id))


@dataclass
class LoadOrderResult:
    ordered: list[FragmentDescriptor]
    disabled: list[FragmentDescriptor] = field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [f.id for f in self.ordered]
