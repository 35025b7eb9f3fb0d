"""Firestore access for the backend jobs."""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore import SERVER_TIMESTAMP, Client  # type: ignore[import-untyped]

from prepmaster_shared import (
    Forecast,
    PrepLog,
    PushToken,
    RecurrenceRule,
    Schedule,
    ScheduleTemplate,
    User,
)
from prepmaster_shared import collections
from prepmaster_shared.firestore import Loaded, load_document, model_to_firestore

logger = logging.getLogger(__name__)

# Firestore rejects write batches larger than this
BATCH_LIMIT = 500


class FirestoreStore:
    """Handles all Firestore operations for the backend jobs."""

    def __init__(self, db: Client):
        self._db = db

    # Recurring schedules

    def get_active_recurrence_rules(self) -> list[Loaded[RecurrenceRule]]:
        """Get every active rule, parsed or carrying the reason it is malformed."""
        query = self._db.collection(collections.RECURRING_SCHEDULES).where("active", "==", True)
        return [load_document(RecurrenceRule, doc.id, doc.to_dict()) for doc in query.stream()]

    def get_schedule_template(self, template_id: str) -> ScheduleTemplate | None:
        """Get a schedule template. Returns None if it does not exist."""
        doc = self._db.collection(collections.SCHEDULE_TEMPLATES).document(template_id).get()
        if not doc.exists:
            return None
        loaded = load_document(ScheduleTemplate, doc.id, doc.to_dict())
        if loaded.model is None:
            raise ValueError(loaded.error)
        return loaded.model

    # Schedules

    def schedule_exists_for_date(self, day: str) -> bool:
        """Check for a schedule on `day`, whoever created it."""
        query = self._db.collection(collections.SCHEDULES).where("date", "==", day).limit(1)
        return any(True for _ in query.stream())

    def create_schedule(self, schedule: Schedule) -> bool:
        """Create a schedule keyed by its id.

        Returns False if a document with that id already exists.
        """
        data = model_to_firestore(schedule, exclude_none=True)
        data["createdAt"] = SERVER_TIMESTAMP
        doc_ref = self._db.collection(collections.SCHEDULES).document(str(schedule.id))
        try:
            doc_ref.create(data)
        except AlreadyExists:
            return False
        return True

    def get_schedules_for_date(self, day: str) -> list[Schedule]:
        query = self._db.collection(collections.SCHEDULES).where("date", "==", day)
        return _valid_models(
            load_document(Schedule, doc.id, doc.to_dict()) for doc in query.stream()
        )

    def get_schedule_data(self, doc_id: str) -> dict[str, Any] | None:
        """Get the raw stored image of a schedule. Returns None if it does not exist."""
        doc = self._db.collection(collections.SCHEDULES).document(doc_id).get()
        if not doc.exists:
            return None
        return doc.to_dict()

    def mark_completion_pushed(self, doc_id: str, pushed_at: str) -> None:
        """Set the completion-notification marker on an existing schedule.

        Raises google.api_core.exceptions.NotFound if the schedule does not exist.
        """
        doc_ref = self._db.collection(collections.SCHEDULES).document(doc_id)
        doc_ref.update({"notifications.completedPushedAt": pushed_at})

    def watch_schedules(self, callback: Callable[..., None]) -> Any:
        """Subscribe to the schedules collection. Returns the watch handle."""
        return self._db.collection(collections.SCHEDULES).on_snapshot(callback)

    # Logs and forecasts

    def get_prep_logs_since(self, start: datetime) -> list[PrepLog]:
        query = self._db.collection(collections.PREP_LOGS).where("createdAt", ">=", start)
        return _valid_models(
            load_document(PrepLog, doc.id, doc.to_dict()) for doc in query.stream()
        )

    def upsert_forecasts(self, forecasts: list[Forecast]) -> int:
        """Merge-write forecasts keyed by date and item name.

        Returns the number of documents written.
        """
        col = self._db.collection(collections.PREP_FORECASTS)
        for start in range(0, len(forecasts), BATCH_LIMIT):
            batch = self._db.batch()
            for forecast in forecasts[start : start + BATCH_LIMIT]:
                batch.set(col.document(forecast.doc_id), model_to_firestore(forecast), merge=True)
            batch.commit()
        return len(forecasts)

    # Users and push tokens

    def get_push_tokens(self) -> list[PushToken]:
        docs = self._db.collection(collections.PUSH_TOKENS).stream()
        return _valid_models(load_document(PushToken, doc.id, doc.to_dict()) for doc in docs)

    def get_users(self) -> list[Loaded[User]]:
        return [
            load_document(User, doc.id, doc.to_dict())
            for doc in self._db.collection(collections.USERS).stream()
        ]

    def update_user(self, doc_id: str, fields: dict[str, Any]) -> None:
        self._db.collection(collections.USERS).document(doc_id).update(fields)

    def add_user(self, user: User) -> str:
        """Add a user document. Returns the new document ID."""
        _, doc_ref = self._db.collection(collections.USERS).add(
            model_to_firestore(user, exclude_none=True)
        )
        return doc_ref.id


def _valid_models(loaded: Iterable[Loaded]) -> list:
    models = []
    for item in loaded:
        if not item.ok:
            logger.warning("Skipping document %s: %s", item.doc_id, item.error)
            continue
        models.append(item.model)
    return models
