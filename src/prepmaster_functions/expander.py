"""Materialize dated schedules from recurring rules.

Runs nightly. For every active rule, each matching date in the upcoming
window gets a schedule copied from the rule's template, unless a schedule
already exists for that date.
"""

import itertools
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from prepmaster_shared import PrepTask, RecurrenceRule, Schedule, ScheduleTemplate, TaskStatus

from .dates import schedule_id_for, sunday_weekday
from .store import FirestoreStore

logger = logging.getLogger(__name__)

DEFAULT_DAYS_AHEAD = 7
MAX_DAYS_AHEAD = 30


@dataclass
class RuleOutcome:
    rule_id: str
    created: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    skipped_reason: str | None = None
    error: str | None = None


@dataclass
class ExpansionReport:
    """Summary of one expander run."""

    today: date
    outcomes: list[RuleOutcome] = field(default_factory=list)

    @property
    def created(self) -> list[str]:
        return [day for outcome in self.outcomes for day in outcome.created]

    @property
    def errors(self) -> list[RuleOutcome]:
        return [outcome for outcome in self.outcomes if outcome.error]


def rule_skip_reason(rule: RecurrenceRule) -> str | None:
    """Reason a rule cannot generate anything, or None if it is usable."""
    if not rule.template_id:
        return "no template id"
    if not rule.days_of_week:
        return "no weekdays selected"
    if rule.assign.primary_prep_person is None:
        return "no primary prep person"
    return None


def days_ahead(rule: RecurrenceRule, max_ahead: int = MAX_DAYS_AHEAD) -> int:
    return min(rule.generate_days_ahead or DEFAULT_DAYS_AHEAD, max_ahead)


def candidate_dates(
    rule: RecurrenceRule, today: date, max_ahead: int = MAX_DAYS_AHEAD
) -> list[date]:
    """Dates from today through today + horizon (inclusive) that the rule fires on."""
    start = rule.start_date or today
    weekdays = set(rule.days_of_week)
    dates = []
    for offset in range(days_ahead(rule, max_ahead) + 1):
        day = today + timedelta(days=offset)
        if day < start:
            continue
        if rule.end_date is not None and day > rule.end_date:
            continue
        if sunday_weekday(day) not in weekdays:
            continue
        dates.append(day)
    return dates


def task_ids(now: datetime) -> Iterator[int]:
    """Fresh task ids: millisecond clock, counting up."""
    return itertools.count(int(now.timestamp() * 1000))


def build_schedule(
    rule: RecurrenceRule,
    template: ScheduleTemplate,
    day: date,
    ids: Iterator[int],
) -> Schedule:
    """Stamp out a schedule for `day` with independent copies of the template's tasks."""
    primary = rule.assign.primary_prep_person
    if primary is None:
        raise ValueError("rule has no primary prep person")
    tasks = [
        PrepTask(
            id=next(ids),
            name=task.name,
            qty=task.qty,
            status=TaskStatus.INCOMPLETE,
            notes=task.notes,
            priority=task.priority,
        )
        for task in template.tasks
    ]
    return Schedule(
        id=schedule_id_for(day),
        date=day.isoformat(),
        primary_prep_person=primary,
        additional_workers=list(rule.assign.additional_workers),
        tasks=tasks,
        created_by=rule.created_by,
    )


def expand_rule(
    store: FirestoreStore,
    rule_id: str,
    rule: RecurrenceRule,
    today: date,
    ids: Iterator[int],
    max_ahead: int = MAX_DAYS_AHEAD,
) -> RuleOutcome:
    """Create the missing schedules for a single rule."""
    outcome = RuleOutcome(rule_id=rule_id)

    reason = rule_skip_reason(rule)
    if reason:
        outcome.skipped_reason = reason
        return outcome

    template = store.get_schedule_template(rule.template_id)
    if template is None:
        outcome.skipped_reason = f"template {rule.template_id} not found"
        return outcome

    for day in candidate_dates(rule, today, max_ahead):
        day_str = day.isoformat()
        if store.schedule_exists_for_date(day_str):
            outcome.existing.append(day_str)
            continue
        schedule = build_schedule(rule, template, day, ids)
        if store.create_schedule(schedule):
            outcome.created.append(day_str)
            logger.info("Created schedule %s from rule %s", day_str, rule_id)
        else:
            outcome.existing.append(day_str)
    return outcome


def generate_upcoming_schedules(
    store: FirestoreStore,
    today: date,
    now: datetime,
    max_ahead: int = MAX_DAYS_AHEAD,
) -> ExpansionReport:
    """Run the expander over every active rule.

    A failure on one rule is logged and recorded; the remaining rules still run.
    """
    report = ExpansionReport(today=today)
    ids = task_ids(now)

    for loaded in store.get_active_recurrence_rules():
        if not loaded.ok:
            logger.warning("Skipping rule %s: %s", loaded.doc_id, loaded.error)
            report.outcomes.append(RuleOutcome(rule_id=loaded.doc_id, skipped_reason=loaded.error))
            continue
        try:
            outcome = expand_rule(store, loaded.doc_id, loaded.model, today, ids, max_ahead)
        except Exception as e:
            logger.exception("Failed to expand rule %s", loaded.doc_id)
            outcome = RuleOutcome(rule_id=loaded.doc_id, error=str(e))
        if outcome.skipped_reason:
            logger.info("Skipping rule %s: %s", outcome.rule_id, outcome.skipped_reason)
        report.outcomes.append(outcome)

    logger.info(
        "Expanded %d rules for %s: %d schedules created, %d rules failed",
        len(report.outcomes),
        today,
        len(report.created),
        len(report.errors),
    )
    return report
