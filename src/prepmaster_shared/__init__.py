from .models import (
    ROLE_DEFAULT_PERMISSIONS,
    SUPERVISOR_ROLES,
    Assignment,
    Forecast,
    Permission,
    PrepAction,
    PrepLog,
    PrepTask,
    Priority,
    PushToken,
    RecurrenceRule,
    Role,
    Schedule,
    ScheduleNotifications,
    ScheduleTemplate,
    TaskStatus,
    TaskTemplate,
    User,
)

__all__ = [
    "ROLE_DEFAULT_PERMISSIONS",
    "SUPERVISOR_ROLES",
    "Assignment",
    "Forecast",
    "Permission",
    "PrepAction",
    "PrepLog",
    "PrepTask",
    "Priority",
    "PushToken",
    "RecurrenceRule",
    "Role",
    "Schedule",
    "ScheduleNotifications",
    "ScheduleTemplate",
    "TaskStatus",
    "TaskTemplate",
    "User",
]
