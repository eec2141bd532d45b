"""Data models for workload planning."""

from datetime import date
from enum import Enum
from typing import Mapping, Union

from pydantic import BaseModel, ConfigDict, Field

from redmine_app.tools.models import Issue

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class WeeklySchedule(BaseModel):
    """Available working hours for each day of the week."""
    model_config = ConfigDict(frozen=True)

    Mon: float = Field(default=0, ge=0)
    Tue: float = Field(default=0, ge=0)
    Wed: float = Field(default=0, ge=0)
    Thu: float = Field(default=0, ge=0)
    Fri: float = Field(default=0, ge=0)
    Sat: float = Field(default=0, ge=0)
    Sun: float = Field(default=0, ge=0)

    def hours_on(self, day: date) -> float:
        return getattr(self, WEEKDAYS[day.weekday()])


ScheduleLike = Union[WeeklySchedule, Mapping[str, float]]

DEFAULT_SCHEDULE = WeeklySchedule(Mon=8, Tue=8, Wed=8, Thu=8, Fri=8, Sat=0, Sun=0)


def as_schedule(schedule: ScheduleLike) -> WeeklySchedule:
    if isinstance(schedule, WeeklySchedule):
        return schedule
    return WeeklySchedule.model_validate(dict(schedule))


class FlexibilityStatus(str, Enum):
    """Scheduling health of a single issue."""
    ON_TRACK = "on-track"
    AT_RISK = "at-risk"  # Less than 20% slack left
    OVERBOOKED = "overbooked"  # More work left than hours available
    COMPLETED = "completed"


class FlexibilityResult(BaseModel):
    """Slack of an issue as a percentage of its estimated work."""
    initial: int  # At the issue's start date
    remaining: int  # From today
    status: FlexibilityStatus


class WorkloadSummary(BaseModel):
    """Workload across a set of issues."""
    total_estimated: float
    total_spent: float
    remaining: float
    available_this_week: float
    buffer: float
    top_urgent: list[Issue] = []
