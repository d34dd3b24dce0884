"""Clock helpers for run metadata and the rolling window anchor."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def parse_reference_now(value: str | None) -> datetime:
    """Return the run's reference time.

    Source timestamps are naive local times, so the wall clock is read as a
    naive local datetime too. An explicit ISO value wins when given.
    """
    if not value:
        return datetime.now()
    parsed = datetime.fromisoformat(value)
    return parsed.replace(tzinfo=None)


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
