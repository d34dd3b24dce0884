"""Rolling window filter anchored on the run's reference time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from nyc311.common.time_utils import add_months


@dataclass(frozen=True)
class Window:
    start: date
    end_exclusive: date

    def contains(self, value: datetime | None) -> bool:
        if value is None:
            return False
        return self.start <= value.date() < self.end_exclusive


def resolve_window(reference_now: datetime, months: int) -> Window:
    today = reference_now.date()
    return Window(start=add_months(today, -months), end_exclusive=today)


def filter_to_window(rows: list[dict], window: Window) -> list[dict]:
    return [row for row in rows if window.contains(row.get("created_at"))]
