from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid date format. Expected YYYY-MM-DD")


def utc_now() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mock it easier.
    """
    return datetime.now(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
