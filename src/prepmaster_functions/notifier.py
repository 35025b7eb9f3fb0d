"""Push a notification when a schedule's last task is completed.

Called for every write to a schedule document with the document's before
and after images. Only the transition from "not all complete" to "all
complete" notifies, and a marker on the document keeps it to one push per
schedule.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from google.api_core.exceptions import NotFound

from prepmaster_shared import SUPERVISOR_ROLES, PushToken, Schedule
from prepmaster_shared.firestore import load_document

from .push import PushMessage, PushSender
from .store import FirestoreStore

logger = logging.getLogger(__name__)

COMPLETED_TITLE = "Prep Schedule Completed"


@dataclass(frozen=True)
class Delivered:
    recipients: int


@dataclass(frozen=True)
class Failed:
    reason: str


@dataclass(frozen=True)
class Skipped:
    reason: str


NotificationResult = Delivered | Failed | Skipped


def all_tasks_complete(schedule: Schedule | None) -> bool:
    return schedule is not None and schedule.all_tasks_complete()


def is_completion_transition(before: Schedule | None, after: Schedule | None) -> bool:
    return all_tasks_complete(after) and not all_tasks_complete(before)


def resolve_recipients(tokens: Iterable[PushToken], primary_prep_person: int) -> list[str]:
    """Tokens of the primary prep person plus every manager and IT admin, deduplicated."""
    recipients = [
        t.token
        for t in tokens
        if t.user_id == primary_prep_person or t.role in SUPERVISOR_ROLES
    ]
    return list(dict.fromkeys(recipients))


def completion_messages(recipients: Iterable[str], day: str) -> list[PushMessage]:
    return [PushMessage(to=to, title=COMPLETED_TITLE, body=f"{day} is finished") for to in recipients]


def _before_image(doc_id: str, data: dict[str, Any] | None) -> Schedule | None:
    if data is None:
        return None
    loaded = load_document(Schedule, doc_id, data)
    if loaded.model is None:
        # An unreadable before-image counts as incomplete
        logger.warning("Ignoring before-image of schedule %s: %s", doc_id, loaded.error)
    return loaded.model


def handle_schedule_write(
    store: FirestoreStore,
    send: PushSender,
    doc_id: str,
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
    now: datetime,
) -> NotificationResult:
    """React to one write on schedules/{doc_id}.

    Never raises: push failures are reported in the result, not to the writer.
    """
    if after is None:
        return Skipped("schedule deleted")

    loaded = load_document(Schedule, doc_id, after)
    if loaded.model is None:
        logger.warning("Cannot evaluate schedule %s: %s", doc_id, loaded.error)
        return Skipped(loaded.error or "invalid schedule")
    schedule = loaded.model

    if not is_completion_transition(_before_image(doc_id, before), schedule):
        return Skipped("no completion transition")
    if schedule.completion_pushed:
        return Skipped("completion already notified")

    try:
        store.mark_completion_pushed(doc_id, now.isoformat())
    except NotFound:
        logger.warning("Schedule %s does not exist, not notifying", doc_id)
        return Skipped("schedule not found")
    except Exception:
        logger.exception("Failed to set completion marker on schedule %s", doc_id)

    try:
        recipients = resolve_recipients(store.get_push_tokens(), schedule.primary_prep_person)
    except Exception as e:
        logger.exception("Failed to load push tokens for schedule %s", doc_id)
        return Failed(f"could not load push tokens: {e}")
    if not recipients:
        logger.info("Schedule %s completed but nobody has a push token", schedule.date)
        return Skipped("no recipients")

    try:
        report = send(completion_messages(recipients, schedule.date))
    except Exception as e:
        logger.exception("Completion push for schedule %s failed", doc_id)
        return Failed(str(e))
    if report.all_failed:
        return Failed(f"all {report.batches_failed} push requests failed")

    logger.info("Notified %d recipients that %s is finished", len(recipients), schedule.date)
    return Delivered(recipients=len(recipients))
