"""Row models for the persistent fragment cache."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass
class ContentEntry:
    file_path: str
    last_write_ticks: int
    parsing_mode: str
    content: str
    cached_at: str | None = None


@dataclass
class DerivedEntry:
    file_path: str
    last_write_ticks: int
    parsing_mode: str
    payload: str  # JSON
    cached_at: str | None = None

    @property
    def value(self) -> Any:
        return json.loads(self.payload)
