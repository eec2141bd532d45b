"""Workload planning for redmine_app - flexibility and weekly workload."""

from redmine_app.planning.flexibility import FlexibilityCalculator, available_hours
from redmine_app.planning.models import (
    DEFAULT_SCHEDULE,
    FlexibilityResult,
    FlexibilityStatus,
    WeeklySchedule,
    WorkloadSummary,
)
from redmine_app.planning.workload import calculate_workload

__all__ = [
    "FlexibilityCalculator",
    "available_hours",
    "calculate_workload",
    "DEFAULT_SCHEDULE",
    "FlexibilityResult",
    "FlexibilityStatus",
    "WeeklySchedule",
    "WorkloadSummary",
]
