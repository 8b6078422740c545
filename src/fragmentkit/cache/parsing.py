"""Cached fragment parsing: file content and defined function names.

Two parsing modes produce different function lists for the same file and so
are cached under different keys:

    regex  top-level ``function Name`` definitions starting in column 0
    ast    comment- and string-aware scan that also finds indented and
           nested ``function``/``filter`` definitions
"""

from __future__ import annotations

import re
import warnings
from collections.abc import Iterable
from pathlib import Path

from fragmentkit.cache.store import FragmentCache
from fragmentkit.models import FragmentDescriptor

PARSING_MODES: tuple[str, ...] = ("regex", "ast")

# Ticks (100 ns) between 0001-01-01 and 1970-01-01, as used for LastWriteTime.
_EPOCH_TICKS = 621_355_968_000_000_000

_NAME = r"(?:(?:global|script|local|private):)?(?P<name>[A-Za-z_][\w.-]*)"

_REGEX_FUNCTION_RE = re.compile(rf"^function[ \t]+{_NAME}", re.IGNORECASE | re.MULTILINE)
_AST_FUNCTION_RE = re.compile(
    rf"(?:^|[;{{}}])[ \t]*(?:function|filter)[ \t]+{_NAME}",
    re.IGNORECASE | re.MULTILINE,
)

# Scanned left to right so whichever construct opens first wins.
_NON_CODE_RE = re.compile(
    r"@'\r?\n.*?\r?\n'@"           # literal here-string
    r'|@"\r?\n.*?\r?\n"@'          # expandable here-string
    r"|<#.*?#>"                    # block comment
    r"|'(?:[^'\n]|'')*'"           # single-quoted string
    r'|"(?:[^"\n`]|`.)*"'          # double-quoted string
    r"|#[^\n]*",                   # line comment
    re.DOTALL,
)


def last_write_ticks(path: Path) -> int:
    """Return the file's modification time in .NET ticks (100 ns since 0001-01-01 UTC)."""
    return _EPOCH_TICKS + path.stat().st_mtime_ns // 100


def _strip_non_code(text: str) -> str:
    return _NON_CODE_RE.sub(lambda m: "\n" * m.group(0).count("\n") or " ", text)


def extract_functions(text: str, parsing_mode: str = "regex") -> list[str]:
    """Return function names defined in *text*, in definition order, without repeats.

    Raises:
        ValueError: for an unknown parsing mode.
    """
    if parsing_mode == "regex":
        matches = _REGEX_FUNCTION_RE.finditer(text)
    elif parsing_mode == "ast":
        matches = _AST_FUNCTION_RE.finditer(_strip_non_code(text))
    else:
        raise ValueError(
            f"Unknown parsing mode '{parsing_mode}'; expected one of {', '.join(PARSING_MODES)}"
        )

    names: list[str] = []
    for match in matches:
        name = match.group("name")
        if name not in names:
            names.append(name)
    return names


def read_content(path: Path, cache: FragmentCache, parsing_mode: str = "regex") -> str:
    """Return the text of *path*, served from *cache* while the file is unchanged.

    Raises:
        OSError: if the file cannot be read.
    """
    path = path.resolve()
    ticks = last_write_ticks(path)
    content = cache.get_content(path, ticks, parsing_mode)
    if content is None:
        content = path.read_text(encoding="utf-8-sig", errors="replace")
        cache.set_content(path, content, ticks, parsing_mode)
    return content


def list_functions(path: Path, cache: FragmentCache, parsing_mode: str = "regex") -> list[str]:
    """Return the functions defined in *path*, served from *cache* while unchanged.

    Raises:
        ValueError: for an unknown parsing mode.
        OSError: if the file cannot be read.
    """
    if parsing_mode not in PARSING_MODES:
        raise ValueError(
            f"Unknown parsing mode '{parsing_mode}'; expected one of {', '.join(PARSING_MODES)}"
        )
    path = path.resolve()
    ticks = last_write_ticks(path)
    names = cache.get_derived(path, ticks, parsing_mode)
    if names is None:
        names = extract_functions(read_content(path, cache, parsing_mode), parsing_mode)
        cache.set_derived(path, names, ticks, parsing_mode)
    return names


def warm_cache(
    fragments: Iterable[FragmentDescriptor],
    cache: FragmentCache,
    parsing_modes: Iterable[str] = PARSING_MODES,
) -> int:
    """Parse every fragment in every mode so later lookups hit the cache.

    Unreadable fragments are skipped with a UserWarning.

    Returns:
        Number of (fragment, mode) pairs now cached.
    """
    modes = list(parsing_modes)
    warmed = 0
    for fragment in fragments:
        for mode in modes:
            try:
                list_functions(fragment.path, cache, mode)
            except OSError as exc:
                warnings.warn(
                    f"Skipping fragment '{fragment.id}': {exc}", UserWarning, stacklevel=2
                )
                break
            warmed += 1
    return warmed
