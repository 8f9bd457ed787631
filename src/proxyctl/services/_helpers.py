"""Shared helper functions."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (for row timestamps and audit entries)."""
    return datetime.now(UTC).isoformat()


def dump_json(value: Any) -> str:
    """Serialize a JSON column value. Unknown types fall back to ``str``."""
    return json.dumps(value, default=str, ensure_ascii=False)


def load_json(raw: str | None, default: Any) -> Any:
    """Decode a JSON column value, returning *default* for NULL/empty text."""
    if not raw:
        return default
    return json.loads(raw)
