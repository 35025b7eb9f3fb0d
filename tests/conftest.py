"""Shared fixtures: an in-memory stand-in for FirestoreStore and a recording push sender."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import pytest
from google.api_core.exceptions import NotFound

from prepmaster_functions.push import PushMessage, PushReport
from prepmaster_shared import (
    Forecast,
    PrepLog,
    PushToken,
    RecurrenceRule,
    Schedule,
    ScheduleTemplate,
    User,
)
from prepmaster_shared.firestore import Loaded, firestore_to_dict, load_document, model_to_firestore


class FakeStore:
    """Implements the FirestoreStore surface over plain dicts of camelCase documents."""

    def __init__(self) -> None:
        self.rules: dict[str, dict[str, Any]] = {}
        self.templates: dict[str, dict[str, Any]] = {}
        self.schedules: dict[str, dict[str, Any]] = {}
        self.logs: list[PrepLog] = []
        self.forecasts: dict[str, dict[str, Any]] = {}
        self.push_tokens: list[dict[str, Any]] = []
        self.users: dict[str, dict[str, Any]] = {}
        self.broken_templates: set[str] = set()
        self.fail_marker_write = False
        self.fail_logs = False
        self.forecast_writes = 0

    def get_active_recurrence_rules(self) -> list[Loaded[RecurrenceRule]]:
        return [
            load_document(RecurrenceRule, doc_id, data)
            for doc_id, data in self.rules.items()
            if data.get("active") is True
        ]

    def get_schedule_template(self, template_id: str) -> ScheduleTemplate | None:
        if template_id in self.broken_templates:
            raise ConnectionError("firestore unavailable")
        data = self.templates.get(template_id)
        if data is None:
            return None
        return ScheduleTemplate.model_validate(firestore_to_dict(data))

    def schedule_exists_for_date(self, day: str) -> bool:
        return any(doc.get("date") == day for doc in self.schedules.values())

    def create_schedule(self, schedule: Schedule) -> bool:
        doc_id = str(schedule.id)
        if doc_id in self.schedules:
            return False
        self.schedules[doc_id] = model_to_firestore(schedule, exclude_none=True)
        return True

    def get_schedules_for_date(self, day: str) -> list[Schedule]:
        return [
            Schedule.model_validate(firestore_to_dict(doc))
            for doc in self.schedules.values()
            if doc.get("date") == day
        ]

    def get_schedule_data(self, doc_id: str) -> dict[str, Any] | None:
        return self.schedules.get(doc_id)

    def mark_completion_pushed(self, doc_id: str, pushed_at: str) -> None:
        if self.fail_marker_write:
            raise ConnectionError("firestore unavailable")
        if doc_id not in self.schedules:
            raise NotFound(f"No document to update: schedules/{doc_id}")
        doc = self.schedules[doc_id]
        doc.setdefault("notifications", {})["completedPushedAt"] = pushed_at

    def get_prep_logs_since(self, start: datetime) -> list[PrepLog]:
        if self.fail_logs:
            raise ConnectionError("firestore unavailable")
        return [log for log in self.logs if log.created_at is not None and log.created_at >= start]

    def upsert_forecasts(self, forecasts: list[Forecast]) -> int:
        for forecast in forecasts:
            existing = self.forecasts.get(forecast.doc_id, {})
            self.forecasts[forecast.doc_id] = {**existing, **model_to_firestore(forecast)}
        self.forecast_writes += len(forecasts)
        return len(forecasts)

    def get_push_tokens(self) -> list[PushToken]:
        return [PushToken.model_validate(firestore_to_dict(t)) for t in self.push_tokens]

    def get_users(self) -> list[Loaded[User]]:
        return [load_document(User, doc_id, data) for doc_id, data in self.users.items()]

    def update_user(self, doc_id: str, fields: dict[str, Any]) -> None:
        self.users[doc_id].update(fields)

    def add_user(self, user: User) -> str:
        doc_id = f"user-{len(self.users) + 1}"
        self.users[doc_id] = model_to_firestore(user, exclude_none=True)
        return doc_id


class RecordingSender:
    """Push sender that records every call instead of hitting Expo."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[list[PushMessage]] = []
        self.fail = fail

    def __call__(self, messages: Sequence[PushMessage]) -> PushReport:
        self.calls.append(list(messages))
        if self.fail:
            return PushReport(messages=len(messages), batches_failed=1)
        return PushReport(messages=len(messages), batches_sent=1)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


def task_doc(task_id: int, status: str = "Incomplete", name: str = "Dice onions") -> dict[str, Any]:
    doc: dict[str, Any] = {"id": task_id, "name": name, "qty": "2 trays", "status": status}
    if status == "Complete":
        doc["completedBy"] = 7
        doc["completedAt"] = "2024-01-08T10:00:00+00:00"
    return doc


def schedule_doc(*statuses: str, day: str = "2024-01-08", primary: int = 7) -> dict[str, Any]:
    return {
        "id": int(day.replace("-", "")),
        "date": day,
        "primaryPrepPerson": primary,
        "additionalWorkers": [],
        "tasks": [task_doc(i + 1, status) for i, status in enumerate(statuses)],
        "createdBy": 1,
    }
