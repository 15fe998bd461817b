from __future__ import annotations

from typing import Any, Optional


def optional_text(value: Any) -> Optional[str]:
    """Trimmed string, or None when blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}
