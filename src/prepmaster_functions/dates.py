"""Date helpers anchored to the deployment timezone."""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo


def local_today(tz: ZoneInfo, now: datetime | None = None) -> date:
    """Calendar date in `tz` at instant `now` (defaults to the wall clock)."""
    return (now or datetime.now(UTC)).astimezone(tz).date()


def sunday_weekday(day: date) -> int:
    """Weekday number with 0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def schedule_id_for(day: date | str) -> int:
    """Schedule ids are the digits of the date: 2024-01-08 -> 20240108."""
    text = day.isoformat() if isinstance(day, date) else day
    return int(text.replace("-", ""))
