"""Clock implementations used by the core."""

from __future__ import annotations

from datetime import datetime, timezone


class SystemClock:
    """Wall clock returning timezone-aware UTC datetimes."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)
