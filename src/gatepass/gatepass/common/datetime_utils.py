from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now()


def strictly_after(candidate: datetime, *previous: Optional[datetime]) -> datetime:
    """Return `candidate`, nudged forward so it is later than every previous stamp."""
    latest = max((p for p in previous if p is not None), default=None)
    if latest is not None and candidate <= latest:
        return latest + timedelta(microseconds=1)
    return candidate


def iso_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
