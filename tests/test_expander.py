"""Tests for recurring schedule generation."""

from datetime import UTC, date, datetime
from typing import Any

import pytest

from conftest import FakeStore
from prepmaster_functions.expander import (
    build_schedule,
    candidate_dates,
    generate_upcoming_schedules,
    rule_skip_reason,
    task_ids,
)
from prepmaster_shared import Assignment, RecurrenceRule, ScheduleTemplate, TaskTemplate

MONDAY = date(2024, 1, 1)
NOW = datetime(2024, 1, 1, 11, 0, tzinfo=UTC)


def rule_doc(**overrides: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "templateId": "tpl-morning",
        "active": True,
        "daysOfWeek": [1, 3],
        "assign": {"primaryPrepPerson": 7, "additionalWorkers": [8, 9]},
        "startDate": "2024-01-01",
        "endDate": "2024-01-10",
        "generateDaysAhead": 14,
        "createdBy": 3,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def seeded(store: FakeStore) -> FakeStore:
    store.templates["tpl-morning"] = {
        "name": "Morning prep",
        "tasks": [
            {"name": "Dice onions", "qty": "2 trays", "priority": "high"},
            {"name": "Make stock", "qty": "3.5 qt", "priority": "medium", "notes": "low simmer"},
        ],
        "createdBy": 3,
    }
    store.rules["rule-1"] = rule_doc()
    return store


class TestCandidateDates:
    def test_weekday_and_date_range_filter(self) -> None:
        rule = RecurrenceRule(
            template_id="tpl",
            active=True,
            days_of_week=[1, 3],
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 10),
            generate_days_ahead=14,
        )
        assert candidate_dates(rule, MONDAY) == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 8),
            date(2024, 1, 10),
        ]

    def test_horizon_is_inclusive_and_defaults_to_seven(self) -> None:
        rule = RecurrenceRule(template_id="tpl", days_of_week=list(range(7)))
        dates = candidate_dates(rule, MONDAY)
        assert len(dates) == 8
        assert dates[-1] == date(2024, 1, 8)

    def test_zero_days_ahead_falls_back_to_default(self) -> None:
        rule = RecurrenceRule(template_id="tpl", days_of_week=list(range(7)), generate_days_ahead=0)
        assert len(candidate_dates(rule, MONDAY)) == 8

    def test_horizon_capped_at_thirty_days(self) -> None:
        rule = RecurrenceRule(template_id="tpl", days_of_week=list(range(7)), generate_days_ahead=90)
        dates = candidate_dates(rule, MONDAY)
        assert len(dates) == 31
        assert dates[-1] == date(2024, 1, 31)

    def test_start_date_in_future(self) -> None:
        rule = RecurrenceRule(
            template_id="tpl",
            days_of_week=list(range(7)),
            start_date=date(2024, 1, 6),
        )
        assert candidate_dates(rule, MONDAY) == [date(2024, 1, 6), date(2024, 1, 7), date(2024, 1, 8)]

    def test_sunday_is_zero(self) -> None:
        rule = RecurrenceRule(template_id="tpl", days_of_week=[0])
        assert candidate_dates(rule, MONDAY) == [date(2024, 1, 7)]


class TestRuleSkipReason:
    def test_usable_rule(self) -> None:
        rule = RecurrenceRule(template_id="tpl", days_of_week=[1], assign=Assignment(primary_prep_person=7))
        assert rule_skip_reason(rule) is None

    def test_missing_template(self) -> None:
        rule = RecurrenceRule(days_of_week=[1], assign=Assignment(primary_prep_person=7))
        assert rule_skip_reason(rule) == "no template id"

    def test_no_weekdays(self) -> None:
        rule = RecurrenceRule(template_id="tpl", assign=Assignment(primary_prep_person=7))
        assert rule_skip_reason(rule) == "no weekdays selected"

    def test_missing_primary(self) -> None:
        rule = RecurrenceRule(template_id="tpl", days_of_week=[1])
        assert rule_skip_reason(rule) == "no primary prep person"


def test_build_schedule_copies_template() -> None:
    rule = RecurrenceRule(
        template_id="tpl",
        days_of_week=[1],
        assign=Assignment(primary_prep_person=7, additional_workers=[8]),
        created_by=3,
    )
    template = ScheduleTemplate(tasks=[TaskTemplate(name="Dice onions", qty="2 trays")])
    schedule = build_schedule(rule, template, date(2024, 1, 8), task_ids(NOW))

    assert schedule.id == 20240108
    assert schedule.date == "2024-01-08"
    assert schedule.primary_prep_person == 7
    assert schedule.additional_workers == [8]
    assert schedule.created_by == 3
    assert [t.status for t in schedule.tasks] == ["Incomplete"]
    assert schedule.tasks[0].completed_by is None


class TestGenerateUpcomingSchedules:
    def test_generates_expected_dates(self, seeded: FakeStore) -> None:
        report = generate_upcoming_schedules(seeded, MONDAY, NOW)

        assert report.created == ["2024-01-01", "2024-01-03", "2024-01-08", "2024-01-10"]
        assert sorted(seeded.schedules) == ["20240101", "20240103", "20240108", "20240110"]

        doc = seeded.schedules["20240108"]
        assert doc["primaryPrepPerson"] == 7
        assert doc["additionalWorkers"] == [8, 9]
        assert doc["createdBy"] == 3
        assert [t["name"] for t in doc["tasks"]] == ["Dice onions", "Make stock"]
        assert all(t["status"] == "Incomplete" for t in doc["tasks"])
        assert "completedBy" not in doc["tasks"][0]

    def test_second_run_creates_nothing(self, seeded: FakeStore) -> None:
        generate_upcoming_schedules(seeded, MONDAY, NOW)
        second = generate_upcoming_schedules(seeded, MONDAY, NOW)

        assert second.created == []
        assert len(seeded.schedules) == 4
        dates = [doc["date"] for doc in seeded.schedules.values()]
        assert len(dates) == len(set(dates))

    def test_overlapping_rules_share_one_schedule_per_date(self, seeded: FakeStore) -> None:
        seeded.rules["rule-2"] = rule_doc(daysOfWeek=[1], assign={"primaryPrepPerson": 9})
        report = generate_upcoming_schedules(seeded, MONDAY, NOW)

        assert len(seeded.schedules) == 4
        assert sorted(report.created) == ["2024-01-01", "2024-01-03", "2024-01-08", "2024-01-10"]

    def test_skips_date_with_client_created_schedule(self, seeded: FakeStore) -> None:
        seeded.schedules["random-doc-id"] = {"id": 1, "date": "2024-01-03", "primaryPrepPerson": 2}
        report = generate_upcoming_schedules(seeded, MONDAY, NOW)

        assert "2024-01-03" not in report.created
        assert report.outcomes[0].existing == ["2024-01-03"]
        assert "20240103" not in seeded.schedules

    def test_task_ids_are_unique(self, seeded: FakeStore) -> None:
        generate_upcoming_schedules(seeded, MONDAY, NOW)
        ids = [t["id"] for doc in seeded.schedules.values() for t in doc["tasks"]]
        assert len(ids) == 8
        assert len(set(ids)) == 8

    def test_template_edits_do_not_touch_generated_tasks(self, seeded: FakeStore) -> None:
        generate_upcoming_schedules(seeded, MONDAY, NOW)
        seeded.templates["tpl-morning"]["tasks"][0]["name"] = "Slice onions"
        seeded.templates["tpl-morning"]["tasks"][0]["qty"] = "5 trays"

        task = seeded.schedules["20240101"]["tasks"][0]
        assert task["name"] == "Dice onions"
        assert task["qty"] == "2 trays"

    def test_malformed_rules_are_skipped(self, seeded: FakeStore) -> None:
        seeded.rules["no-template"] = rule_doc(templateId="")
        seeded.rules["no-days"] = rule_doc(daysOfWeek=[])
        seeded.rules["text-primary"] = rule_doc(assign={"primaryPrepPerson": "seven"})
        seeded.rules["missing-template"] = rule_doc(templateId="gone")

        report = generate_upcoming_schedules(seeded, MONDAY, NOW)
        reasons = {o.rule_id: o.skipped_reason for o in report.outcomes}

        assert reasons["no-template"] == "no template id"
        assert reasons["no-days"] == "no weekdays selected"
        assert "primary_prep_person" in reasons["text-primary"]
        assert reasons["missing-template"] == "template gone not found"
        assert reasons["rule-1"] is None
        assert len(seeded.schedules) == 4

    def test_inactive_rule_generates_nothing(self, seeded: FakeStore) -> None:
        seeded.rules["rule-1"]["active"] = False
        report = generate_upcoming_schedules(seeded, MONDAY, NOW)
        assert report.outcomes == []
        assert seeded.schedules == {}

    def test_failure_on_one_rule_does_not_stop_others(self, seeded: FakeStore) -> None:
        seeded.templates["tpl-evening"] = {"name": "Evening", "tasks": [{"name": "Portion fish"}]}
        seeded.broken_templates.add("tpl-morning")
        seeded.rules["rule-2"] = rule_doc(templateId="tpl-evening", daysOfWeek=[2])

        report = generate_upcoming_schedules(seeded, MONDAY, NOW)

        assert [o.rule_id for o in report.errors] == ["rule-1"]
        assert "firestore unavailable" in report.errors[0].error
        assert report.created == ["2024-01-02", "2024-01-09"]
