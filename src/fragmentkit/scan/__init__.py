"""Fragment directory scanning."""

from fragmentkit.scan.parser import (
    Declarations,
    parse_declarations,
    parse_fragment,
    scan_fragments,
    tier_from_name,
)

__all__ = [
    "Declarations",
    "parse_declarations",
    "parse_fragment",
    "scan_fragments",
    "tier_from_name",
]
