from __future__ import annotations

import time
from datetime import date, datetime

MS_PER_DAY = 24 * 60 * 60 * 1000


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_ms() -> int:
    """Current time as epoch milliseconds.

    Note: Wrapped so services can take it as an injectable clock in tests.
    """
    return int(time.time() * 1000)


def days_before(now: int, days: int) -> int:
    return int(now) - int(days) * MS_PER_DAY


def timestamp_slug(epoch_ms: int) -> str:
    """Filename-safe local timestamp, e.g. 20250914_081500."""
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y%m%d_%H%M%S")
