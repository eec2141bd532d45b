"""Tests for the workload calculator."""

from datetime import date

from redmine_app.planning import DEFAULT_SCHEDULE, calculate_workload
from redmine_app.tools.models import Issue


def make_issue(**overrides) -> Issue:
    fields = {
        "id": 1,
        "project": {"id": 1, "name": "Test Project"},
        "tracker": {"id": 1, "name": "Bug"},
        "status": {"id": 1, "name": "Open"},
        "subject": "Test Issue",
        "start_date": "2025-11-01",
        "due_date": "2025-11-30",
        "done_ratio": 0,
        "estimated_hours": 10,
        "spent_hours": 0,
    }
    fields.update(overrides)
    return Issue.model_validate(fields)


def test_remaining_is_floored_per_issue() -> None:
    issues = [
        make_issue(id=1, estimated_hours=10, spent_hours=5),
        make_issue(id=2, estimated_hours=20, spent_hours=8),
        make_issue(id=3, estimated_hours=15, spent_hours=15),
        make_issue(id=4, estimated_hours=5, spent_hours=9),  # overrun does not offset others
    ]

    result = calculate_workload(issues, DEFAULT_SCHEDULE, date(2025, 11, 24))

    assert result.total_estimated == 50
    assert result.total_spent == 37
    assert result.remaining == 17


def test_totals_match_example() -> None:
    issues = [
        make_issue(id=1, estimated_hours=10, spent_hours=5),
        make_issue(id=2, estimated_hours=20, spent_hours=8),
        make_issue(id=3, estimated_hours=15, spent_hours=15),
    ]

    result = calculate_workload(issues, DEFAULT_SCHEDULE)

    assert result.total_estimated == 45
    assert result.total_spent == 28
    assert result.remaining == 17


def test_buffer_uses_rest_of_week() -> None:
    # Wednesday: Wed + Thu + Fri = 24h
    issues = [make_issue(estimated_hours=20, spent_hours=10)]

    result = calculate_workload(issues, DEFAULT_SCHEDULE, date(2025, 11, 26))

    assert result.available_this_week == 24
    assert result.remaining == 10
    assert result.buffer == 14


def test_sunday_has_no_hours_left() -> None:
    result = calculate_workload([make_issue(estimated_hours=4)], DEFAULT_SCHEDULE, date(2025, 11, 30))

    assert result.available_this_week == 0
    assert result.buffer == -4


def test_top_urgent_sorted_by_due_date() -> None:
    issues = [
        make_issue(id=1, subject="Due far", due_date="2025-12-15"),
        make_issue(id=2, subject="Due soon", due_date="2025-11-27"),
        make_issue(id=3, subject="Due tomorrow", due_date="2025-11-25"),
        make_issue(id=4, subject="Due middle", due_date="2025-11-30"),
        make_issue(id=5, subject="No due date", due_date=None),
    ]

    result = calculate_workload(issues, DEFAULT_SCHEDULE, date(2025, 11, 24))

    assert [i.id for i in result.top_urgent] == [3, 2, 4]


def test_top_urgent_ties_keep_input_order() -> None:
    issues = [
        make_issue(id=7, due_date="2025-11-27"),
        make_issue(id=3, due_date="2025-11-27"),
        make_issue(id=5, due_date="2025-11-26"),
    ]

    result = calculate_workload(issues, DEFAULT_SCHEDULE, date(2025, 11, 24))

    assert [i.id for i in result.top_urgent] == [5, 7, 3]


def test_closed_and_undated_issues_are_not_substituted() -> None:
    issues = [
        make_issue(id=1, due_date="2025-11-25", spent_hours=10, done_ratio=100),
        make_issue(id=2, due_date="2025-11-26", spent_hours=2, done_ratio=25),
        make_issue(id=3, due_date=None),
    ]

    result = calculate_workload(issues, DEFAULT_SCHEDULE, date(2025, 11, 24))

    assert [i.id for i in result.top_urgent] == [2]


def test_issues_without_estimate_skip_hour_totals() -> None:
    issues = [
        make_issue(id=1, estimated_hours=None, spent_hours=5, due_date="2025-11-25"),
        make_issue(id=2, estimated_hours=10, spent_hours=3, due_date="2025-11-28"),
    ]

    result = calculate_workload(issues, DEFAULT_SCHEDULE, date(2025, 11, 24))

    assert result.total_estimated == 10
    assert result.total_spent == 3
    assert result.remaining == 7
    # Still ranked for urgency
    assert [i.id for i in result.top_urgent] == [1, 2]


def test_empty_issue_list() -> None:
    result = calculate_workload([], DEFAULT_SCHEDULE, date(2025, 11, 24))

    assert result.total_estimated == 0
    assert result.total_spent == 0
    assert result.remaining == 0
    assert result.available_this_week == 40
    assert result.top_urgent == []
