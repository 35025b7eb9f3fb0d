"""Firestore collection names.

The mobile client and the backend jobs both rely on these names.
"""

USERS = "users"
SCHEDULES = "schedules"
SCHEDULE_TEMPLATES = "scheduleTemplates"
RECURRING_SCHEDULES = "recurringSchedules"
PREP_LOGS = "prepLogs"
PREP_FORECASTS = "prepForecasts"
PUSH_TOKENS = "pushTokens"
