"""Morning digest of yesterday's prep progress for managers."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from prepmaster_shared import SUPERVISOR_ROLES, Schedule, TaskStatus

from .notifier import Delivered, Failed, NotificationResult, Skipped
from .push import PushMessage, PushSender
from .store import FirestoreStore

logger = logging.getLogger(__name__)

DIGEST_TITLE = "Daily Prep Digest"


@dataclass(frozen=True)
class DigestSummary:
    day: str
    total: int
    done: int

    @property
    def pending(self) -> int:
        return self.total - self.done

    @property
    def rate(self) -> int:
        """Completion percentage, rounded half up."""
        if self.total == 0:
            return 0
        return int(self.done * 100 / self.total + 0.5)

    @property
    def body(self) -> str:
        return f"{self.day}: {self.done}/{self.total} done ({self.rate}%), pending {self.pending}"


def summarize_schedules(day: str, schedules: Iterable[Schedule]) -> DigestSummary:
    total = done = 0
    for schedule in schedules:
        total += len(schedule.tasks)
        done += sum(1 for t in schedule.tasks if t.status == TaskStatus.COMPLETE)
    return DigestSummary(day=day, total=total, done=done)


def send_daily_digest(store: FirestoreStore, send: PushSender, today: date) -> NotificationResult:
    """Summarize yesterday's schedules and push the digest to managers and IT admins."""
    day = (today - timedelta(days=1)).isoformat()
    summary = summarize_schedules(day, store.get_schedules_for_date(day))
    logger.info("Digest for %s: %s", day, summary.body)

    recipients = list(
        dict.fromkeys(t.token for t in store.get_push_tokens() if t.role in SUPERVISOR_ROLES)
    )
    if not recipients:
        return Skipped("no recipients")

    messages = [PushMessage(to=to, title=DIGEST_TITLE, body=summary.body) for to in recipients]
    report = send(messages)
    if report.all_failed:
        return Failed(f"all {report.batches_failed} push requests failed")
    return Delivered(recipients=len(recipients))
