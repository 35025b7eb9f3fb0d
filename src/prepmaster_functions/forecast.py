"""Nightly prep-quantity forecasts.

Aggregates the last four weeks of `prepared` logs per task name and weekday,
then writes one predicted quantity per task name for each of the next seven
days. Forecast documents are keyed by date and item, so re-running the job
overwrites rather than accumulates.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from prepmaster_shared import Forecast, PrepAction, PrepLog

from .dates import sunday_weekday
from .store import FirestoreStore

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 28
HORIZON_DAYS = 7
WEEKDAY_WEIGHT = 0.7
OVERALL_WEIGHT = 0.3
UNKNOWN_ITEM = "Unknown"

_NUMBER_RE = re.compile(r"([-+]?[0-9]*\.?[0-9]+)")


def parse_numeric_qty(qty: str | None) -> float:
    """First signed decimal number in a free-text quantity, or 1.

    "2 trays" -> 2, "3.5 qt" -> 3.5, "a few" -> 1.
    """
    if not qty:
        return 1.0
    match = _NUMBER_RE.search(qty.strip())
    if match is None:
        return 1.0
    return float(match.group(1))


@dataclass
class ItemStats:
    """Quantity sums for one task name over the lookback window."""

    by_weekday: list[float] = field(default_factory=lambda: [0.0] * 7)
    total: float = 0.0
    count: int = 0

    def add(self, weekday: int, qty: float) -> None:
        self.by_weekday[weekday] += qty
        self.total += qty
        self.count += 1

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0


def log_weekday(log: PrepLog, tz: ZoneInfo) -> int:
    if log.created_at is not None:
        return sunday_weekday(log.created_at.astimezone(tz).date())
    return sunday_weekday(date.fromisoformat(log.schedule_date))


def aggregate_logs(logs: Iterable[PrepLog], tz: ZoneInfo) -> dict[str, ItemStats]:
    """Sum prepared quantities per task name and weekday. Reverted logs are ignored."""
    stats: dict[str, ItemStats] = {}
    for log in logs:
        if log.action != PrepAction.PREPARED:
            continue
        name = log.task_name.strip() or UNKNOWN_ITEM
        stats.setdefault(name, ItemStats()).add(log_weekday(log, tz), parse_numeric_qty(log.qty))
    return stats


def predict_qty(stats: ItemStats, weekday: int) -> float:
    """70/30 blend of the weekday's sum and the overall per-entry average, floored at 0."""
    blended = stats.by_weekday[weekday] * WEEKDAY_WEIGHT + stats.average * OVERALL_WEIGHT
    return max(0.0, round(blended, 2))


def build_forecasts(
    stats: dict[str, ItemStats],
    today: date,
    computed_at: datetime,
    horizon_days: int = HORIZON_DAYS,
) -> list[Forecast]:
    forecasts = []
    for offset in range(horizon_days):
        day = today + timedelta(days=offset)
        weekday = sunday_weekday(day)
        for item_name, item_stats in stats.items():
            forecasts.append(
                Forecast(
                    date=day.isoformat(),
                    item_name=item_name,
                    predicted_qty=predict_qty(item_stats, weekday),
                    computed_at=computed_at,
                )
            )
    return forecasts


def compute_prep_forecasts(
    store: FirestoreStore,
    now: datetime,
    tz: ZoneInfo,
    lookback_days: int = LOOKBACK_DAYS,
    horizon_days: int = HORIZON_DAYS,
) -> int:
    """Recompute forecasts from recent logs.

    Returns the number of forecast documents written. An empty log window
    writes nothing.
    """
    start = now - timedelta(days=lookback_days)
    logs = store.get_prep_logs_since(start)
    if not logs:
        logger.info("No prep logs since %s, skipping forecasts", start.isoformat())
        return 0

    stats = aggregate_logs(logs, tz)
    if not stats:
        logger.info("No prepared logs in %d entries, skipping forecasts", len(logs))
        return 0

    today = now.astimezone(tz).date()
    written = store.upsert_forecasts(build_forecasts(stats, today, now, horizon_days))
    logger.info("Wrote %d forecasts for %d items from %d logs", written, len(stats), len(logs))
    return written
