"""Workload summary across a set of issues."""

from datetime import date, timedelta
from typing import Iterable, Optional

from redmine_app.planning.flexibility import available_hours
from redmine_app.planning.models import ScheduleLike, WorkloadSummary, as_schedule
from redmine_app.tools.models import Issue

TOP_URGENT_COUNT = 3


def calculate_workload(
    issues: Iterable[Issue],
    schedule: ScheduleLike,
    today: Optional[date] = None
) -> WorkloadSummary:
    """
    Summarise estimated, spent and remaining work against this week's hours.

    Only issues with an estimate count towards the hour totals. Remaining
    work is floored at zero per issue, so an overrun on one issue does not
    offset work left on another.

    Args:
        issues: Issues to summarise
        schedule: Weekly working hours
        today: Reference date (default: date.today())
    """
    schedule = as_schedule(schedule)
    today = today or date.today()
    issues = list(issues)

    estimated = [i for i in issues if i.estimated_hours is not None]
    total_estimated = sum(i.estimated_hours for i in estimated)
    total_spent = sum(i.spent_hours or 0 for i in estimated)
    remaining = sum(max(i.estimated_hours - (i.spent_hours or 0), 0) for i in estimated)

    # Today through Sunday
    end_of_week = today + timedelta(days=6 - today.weekday())
    available_this_week = available_hours(schedule, today, end_of_week)

    # sorted() is stable, ties keep input order
    open_with_due_date = [i for i in issues if i.done_ratio < 100 and i.due_date is not None]
    top_urgent = sorted(open_with_due_date, key=lambda i: i.due_date)[:TOP_URGENT_COUNT]

    return WorkloadSummary(
        total_estimated=total_estimated,
        total_spent=total_spent,
        remaining=remaining,
        available_this_week=available_this_week,
        buffer=available_this_week - remaining,
        top_urgent=top_urgent,
    )
