"""
Flexibility calculation for issues.

Flexibility is the slack between the working hours available before an
issue's due date and the hours of work it still needs:

    flexibility = (available_hours / estimated_hours - 1) * 100

+100% means twice the needed time is available, 0% means exactly enough,
negative means the issue cannot be finished on time at the given schedule.
"""

import logging
import math
from datetime import date, timedelta
from typing import Optional

from redmine_app.planning.models import (
    FlexibilityResult,
    FlexibilityStatus,
    ScheduleLike,
    WeeklySchedule,
    as_schedule,
)
from redmine_app.tools.models import Issue

logger = logging.getLogger(__name__)

AT_RISK_THRESHOLD = 20


def available_hours(schedule: WeeklySchedule, start: date, end: date) -> float:
    """Sum of scheduled hours for every day from ``start`` to ``end`` inclusive."""
    total = 0.0
    current_date = start
    while current_date <= end:
        total += schedule.hours_on(current_date)
        current_date += timedelta(days=1)
    return total


def _percent(available: float, needed: float) -> int:
    # Half-up rounding so 12.5 -> 13 and -12.5 -> -12
    return math.floor((available / needed - 1) * 100 + 0.5)


def classify(remaining: int) -> FlexibilityStatus:
    if remaining < 0:
        return FlexibilityStatus.OVERBOOKED
    if remaining < AT_RISK_THRESHOLD:
        return FlexibilityStatus.AT_RISK
    return FlexibilityStatus.ON_TRACK


class FlexibilityCalculator:
    """Computes and memoises flexibility per (issue, schedule, today)."""

    def __init__(self):
        self._cache: dict[tuple, Optional[FlexibilityResult]] = {}

    def clear_cache(self) -> None:
        """Forget memoised results, e.g. when the date changes."""
        self._cache.clear()

    def calculate(
        self,
        issue: Issue,
        schedule: ScheduleLike,
        today: Optional[date] = None
    ) -> Optional[FlexibilityResult]:
        """
        Calculate flexibility for one issue.

        Args:
            issue: Issue with due_date and estimated_hours set
            schedule: Weekly working hours
            today: Reference date (default: date.today())

        Returns:
            FlexibilityResult, or None when the issue has no due date or no
            positive estimate
        """
        schedule = as_schedule(schedule)
        today = today or date.today()

        key = (
            issue.id,
            issue.start_date,
            issue.due_date,
            issue.estimated_hours,
            issue.spent_hours,
            issue.done_ratio,
            schedule,
            today,
        )
        if key in self._cache:
            return self._cache[key]

        result = self._compute(issue, schedule, today)
        self._cache[key] = result
        return result

    def _compute(self, issue: Issue, schedule: WeeklySchedule, today: date) -> Optional[FlexibilityResult]:
        if issue.due_date is None or not issue.estimated_hours or issue.estimated_hours <= 0:
            return None

        start = issue.start_date or today
        initial = _percent(available_hours(schedule, start, issue.due_date), issue.estimated_hours)

        remaining_estimate = issue.estimated_hours - (issue.spent_hours or 0)
        if remaining_estimate > 0:
            remaining = _percent(available_hours(schedule, today, issue.due_date), remaining_estimate)
        else:
            # Nothing left of the estimate
            remaining = 100

        if issue.done_ratio == 100:
            status = FlexibilityStatus.COMPLETED
        else:
            status = classify(remaining)

        logger.debug(f"Issue #{issue.id}: initial={initial}% remaining={remaining}% {status.value}")
        return FlexibilityResult(initial=initial, remaining=remaining, status=status)
