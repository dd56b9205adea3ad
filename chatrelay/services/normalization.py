# chatrelay/services/normalization.py
"""
Input normalization shared by every entry point.

Client input is never rejected: values are coerced to strings, trimmed,
truncated and, where empty, replaced by a default. Callers treat an empty
result from ``normalize_text`` as "drop this message".
"""

from __future__ import annotations

from typing import Any, Optional


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _clip(value: Any, limit: int) -> str:
    return _as_text(value).strip()[:limit].strip()


def normalize_name(value: Any, limit: int = 24, default: str = "Guest") -> str:
    return _clip(value, limit) or default


def normalize_room(value: Any, limit: int = 32, default: str = "general") -> str:
    """Trim, lowercase and truncate a room name; empty becomes ``default``.

    Lowercasing comes before truncation: some characters grow when
    lowercased ("İ" becomes two code points).
    """
    return _clip(_as_text(value).lower(), limit) or default


def normalize_text(value: Any, limit: int = 500) -> str:
    """Return the message body to store, or ``""`` if it should be dropped."""
    return _clip(value, limit)


def normalize_avatar(value: Any) -> Optional[str]:
    # Avatars are opaque references (URLs, data URIs); only empties are rejected.
    if value is None:
        return None
    text = _as_text(value).strip()
    return text or None
