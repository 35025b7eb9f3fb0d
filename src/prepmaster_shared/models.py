"""Firestore data models for PrepMaster.

These models define the schema for all Firestore collections.
The mobile client and the backend jobs must both conform to this schema.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Self

from pydantic import BaseModel, Field, StrictInt, model_validator


class Role(StrEnum):
    EMPLOYEE = "Employee"
    MANAGER = "Manager"
    IT_ADMIN = "IT_Admin"


class TaskStatus(StrEnum):
    INCOMPLETE = "Incomplete"
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PrepAction(StrEnum):
    PREPARED = "prepared"
    REVERTED = "reverted"
    WASTED = "wasted"


class Permission(StrEnum):
    ASSIGN_TASKS = "assign_tasks"
    VIEW_LOGS = "view_logs"
    EDIT_TASKS = "edit_tasks"
    DELETE_TASKS = "delete_tasks"
    MANAGE_USERS = "manage_users"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_PERMISSIONS = "manage_permissions"
    SYSTEM_SETTINGS = "system_settings"


ROLE_DEFAULT_PERMISSIONS: dict[Role, list[Permission]] = {
    Role.IT_ADMIN: list(Permission),
    Role.MANAGER: [
        Permission.ASSIGN_TASKS,
        Permission.VIEW_LOGS,
        Permission.EDIT_TASKS,
        Permission.DELETE_TASKS,
        Permission.MANAGE_USERS,
        Permission.VIEW_ANALYTICS,
    ],
    Role.EMPLOYEE: [],
}

# Roles that receive manager-level notifications
SUPERVISOR_ROLES = frozenset({Role.MANAGER, Role.IT_ADMIN})

Weekday = Annotated[int, Field(ge=0, le=6)]  # 0 = Sunday


class User(BaseModel):
    """Firestore: users/{docId}

    `id` is assigned by the client, not by Firestore. The PIN is the
    de-facto login key.
    """

    id: int
    name: str
    pin: Annotated[str, Field(pattern=r"^\d{4}$")]
    role: Role = Role.EMPLOYEE
    permissions: list[str] = Field(default_factory=list)
    active: bool = True
    created_at: datetime | None = None


class TaskTemplate(BaseModel):
    name: str
    qty: str = ""  # free text, e.g. "2 trays"
    priority: Priority = Priority.MEDIUM
    notes: str = ""


class ScheduleTemplate(BaseModel):
    """Firestore: scheduleTemplates/{templateId}"""

    name: str = ""
    tasks: list[TaskTemplate] = Field(default_factory=list)
    created_by: int | None = None


class Assignment(BaseModel):
    primary_prep_person: StrictInt | None = None
    additional_workers: list[int] = Field(default_factory=list)


class RecurrenceRule(BaseModel):
    """Firestore: recurringSchedules/{ruleId}"""

    template_id: str = ""
    active: bool = False
    days_of_week: list[Weekday] = Field(default_factory=list)
    assign: Assignment = Field(default_factory=Assignment)
    start_date: date | None = None
    end_date: date | None = None
    generate_days_ahead: Annotated[int, Field(ge=0)] | None = None
    created_by: int = 0


class PrepTask(BaseModel):
    """A task embedded in a schedule document."""

    id: int
    name: str
    qty: str = ""
    status: TaskStatus = TaskStatus.INCOMPLETE
    notes: str = ""
    priority: Priority = Priority.MEDIUM
    completed_by: int | None = None
    completed_at: datetime | None = None
    started_at: datetime | None = None

    @model_validator(mode="after")
    def _completion_fields_match_status(self) -> Self:
        has_completion = self.completed_by is not None and self.completed_at is not None
        has_any = self.completed_by is not None or self.completed_at is not None
        if self.status == TaskStatus.COMPLETE and not has_completion:
            raise ValueError("completed task needs completedBy and completedAt")
        if self.status != TaskStatus.COMPLETE and has_any:
            raise ValueError(f"{self.status} task must not carry completedBy/completedAt")
        return self


class ScheduleNotifications(BaseModel):
    completed_pushed_at: str | None = None


class Schedule(BaseModel):
    """Firestore: schedules/{docId}

    At most one schedule exists per date.
    """

    id: int
    date: str  # YYYY-MM-DD
    primary_prep_person: int
    additional_workers: list[int] = Field(default_factory=list)
    tasks: list[PrepTask] = Field(default_factory=list)
    created_by: int = 0
    created_at: datetime | None = None
    notifications: ScheduleNotifications | None = None

    def all_tasks_complete(self) -> bool:
        """An empty schedule is never complete."""
        return bool(self.tasks) and all(t.status == TaskStatus.COMPLETE for t in self.tasks)

    @property
    def completion_pushed(self) -> bool:
        return bool(self.notifications and self.notifications.completed_pushed_at)


class PrepLog(BaseModel):
    """Firestore: prepLogs/{logId}

    Append-only audit record of a task transition.
    """

    schedule_id: int
    schedule_date: str  # YYYY-MM-DD
    task_id: int
    task_name: str = ""
    qty: str | None = None
    action: PrepAction
    user_id: int
    user_name: str = ""
    created_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_seconds: Annotated[int, Field(ge=0)] | None = None


class Forecast(BaseModel):
    """Firestore: prepForecasts/{date}__{itemName}"""

    date: str  # YYYY-MM-DD
    item_name: str
    predicted_qty: float
    computed_at: datetime | None = None

    @property
    def doc_id(self) -> str:
        # Firestore document ids cannot contain "/"
        return f"{self.date}__{self.item_name}".replace("/", "_")


class PushToken(BaseModel):
    """Firestore: pushTokens/{userId}"""

    user_id: StrictInt
    token: Annotated[str, Field(min_length=1)]
    role: Role = Role.EMPLOYEE
    platform: str | None = None
    updated_at: datetime | None = None
