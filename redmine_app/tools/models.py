"""Data models for Redmine API payloads."""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class NamedEntity(BaseModel):
    """Reference to a status, tracker, user or project by id and label."""
    id: int
    name: str = ""


class IssueStatus(BaseModel):
    """Represents a Redmine issue status."""
    id: int
    name: str


class Issue(BaseModel):
    """Represents a Redmine issue."""
    id: int
    project: Optional[NamedEntity] = None
    tracker: Optional[NamedEntity] = None
    status: Optional[NamedEntity] = None
    priority: Optional[NamedEntity] = None
    author: Optional[NamedEntity] = None
    assigned_to: Optional[NamedEntity] = None
    parent: Optional[NamedEntity] = None
    subject: str = ""
    description: Optional[str] = ""
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    done_ratio: int = Field(default=0, ge=0, le=100)
    is_private: bool = False
    estimated_hours: Optional[float] = None
    spent_hours: Optional[float] = None  # Hours logged on this issue directly
    total_spent_hours: Optional[float] = None  # Including subtasks
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None
    closed_on: Optional[datetime] = None


class IssueList(BaseModel):
    """A page of issues as returned by /issues.json."""
    issues: list[Issue] = []
    total_count: int = 0


class Project(BaseModel):
    """Represents a Redmine project."""
    id: int
    name: str
    description: Optional[str] = ""
    identifier: str = ""
    parent: Optional[NamedEntity] = None


class ProjectPickItem(BaseModel):
    """Selection-list projection of a project."""
    label: str
    description: str
    detail: str
    identifier: str
    project: Any


class Membership(BaseModel):
    """A project member. Either a user or a group."""
    id: int
    name: str
    is_user: bool = True


class QuickUpdate(BaseModel):
    """Status, assignee and note change to apply to one issue."""
    issue_id: int
    status: IssueStatus
    assignee: Membership
    message: str = ""

    @model_validator(mode="after")
    def _assignee_must_be_user(self) -> "QuickUpdate":
        if not self.assignee.is_user:
            raise ValueError(f"'{self.assignee.name}' is a group and cannot be assigned")
        return self


class QuickUpdateResult(BaseModel):
    """Outcome of a quick update. Empty differences means fully applied."""
    differences: list[str] = []

    def is_successful(self) -> bool:
        return not self.differences
