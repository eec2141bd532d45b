"""
Redmine API client for redmine_app.

Wraps the REST endpoints used by the app: issues, projects, memberships,
time entries and the reference lists (statuses, activities, trackers,
priorities).
"""

import asyncio
import logging
from datetime import date
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from redmine_app.config import ConnectionDescriptor, create_descriptor, equivalent
from redmine_app.tools.api_logger import Executor, LoggingExecutor
from redmine_app.tools.errors import ResponseError
from redmine_app.tools.http import RequestExecutor
from redmine_app.tools.models import (
    Issue,
    IssueList,
    IssueStatus,
    Membership,
    NamedEntity,
    Project,
    ProjectPickItem,
    QuickUpdate,
    QuickUpdateResult,
)

logger = logging.getLogger(__name__)

PROJECTS_PAGE_SIZE = 50

CREATE_ISSUE_FIELDS = (
    "project_id",
    "tracker_id",
    "priority_id",
    "status_id",
    "subject",
    "description",
    "estimated_hours",
    "start_date",
    "due_date",
    "parent_issue_id",
    "assigned_to_id",
)


def _collapse_newlines(text: str) -> str:
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", "")


class RedmineProject:
    """A project fetched from a Redmine server."""

    def __init__(self, server: "RedmineServer", project: Project):
        self.server = server
        self.project = project

    @property
    def id(self) -> int:
        return self.project.id

    @property
    def parent(self) -> Optional[NamedEntity]:
        return self.project.parent

    def to_pick_item(self) -> ProjectPickItem:
        """Selection-list projection: name, one-line description, identifier."""
        return ProjectPickItem(
            label=self.project.name,
            description=_collapse_newlines(self.project.description or ""),
            detail=self.project.identifier,
            identifier=self.project.identifier,
            project=self,
        )

    def __repr__(self) -> str:
        return f"RedmineProject(id={self.id}, identifier={self.project.identifier!r})"


def _require(data: Any, key: str, path: str) -> Any:
    """Pull ``key`` out of a response body or fail with a ResponseError."""
    if isinstance(data, dict) and key in data:
        return data[key]

    message = f"Response from {path} has no '{key}'"
    if isinstance(data, dict) and (data.get("error") or data.get("errors")):
        message += f": {data.get('error') or data.get('errors')}"
    raise ResponseError(message)


def _decode(model: type[BaseModel], value: Any, path: str) -> Any:
    """Validate a payload record into ``model`` or fail with a ResponseError."""
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise ResponseError(f"Unusable {model.__name__} in response from {path}: {e}") from e


class RedmineServer:
    """Client for one Redmine server."""

    def __init__(self, descriptor: ConnectionDescriptor, executor: Executor | None = None):
        self.options = descriptor
        self.executor = executor or RequestExecutor(descriptor)

        # Reference data, fetched once per client
        self._reference: dict[str, list] = {}
        self._pending: dict[str, asyncio.Future] = {}

    @classmethod
    def from_options(
        cls,
        address: str,
        key: str,
        additional_headers: Optional[dict[str, str]] = None,
        client: httpx.AsyncClient | None = None,
        logging_enabled: bool = False
    ) -> "RedmineServer":
        """
        Validate options and build a server.

        Raises:
            ConfigurationError: on an empty, malformed or non-https address, or an empty key
        """
        descriptor = create_descriptor(address, key, additional_headers)
        executor: Executor = RequestExecutor(descriptor, client=client)
        if logging_enabled:
            executor = LoggingExecutor(executor)
        return cls(descriptor, executor)

    def compare(self, other: "RedmineServer") -> bool:
        """True if ``other`` talks to the same server with the same key."""
        return equivalent(self.options, other.options)

    async def request(self, path: str, method: str = "GET", body: Optional[Any] = None) -> Any:
        return await self.executor.execute(path, method, body)

    async def aclose(self) -> None:
        close = getattr(self.executor, "aclose", None)
        if close is not None:
            await close()

    # ------------------------------------------------------------------
    # Reference data

    async def _cached(self, slot: str, path: str, key: str) -> list:
        if slot in self._reference:
            return self._reference[slot]

        pending = self._pending.get(slot)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_reference(slot, path, key))
            self._pending[slot] = pending
            pending.add_done_callback(lambda _: self._pending.pop(slot, None))
        # A cancelled caller must not cancel the fetch others are waiting on
        return await asyncio.shield(pending)

    async def _fetch_reference(self, slot: str, path: str, key: str) -> list:
        data = await self.request(path)
        items = _require(data, key, path)
        self._reference[slot] = items
        logger.debug(f"Cached {len(items)} {slot}")
        return items

    async def get_issue_statuses(self) -> list[IssueStatus]:
        """All issue statuses. Fetched once, then served from cache."""
        raw = await self._cached("issue_statuses", "/issue_statuses.json", "issue_statuses")
        return [_decode(IssueStatus, status, "/issue_statuses.json") for status in raw]

    async def get_time_entry_activities(self) -> list[NamedEntity]:
        """All time entry activities. Fetched once, then served from cache."""
        raw = await self._cached(
            "time_entry_activities", "/time_entry_activities.json", "time_entry_activities"
        )
        return [_decode(NamedEntity, activity, "/time_entry_activities.json") for activity in raw]

    async def get_trackers(self) -> list[NamedEntity]:
        path = "/trackers.json"
        data = await self.request(path)
        return [_decode(NamedEntity, t, path) for t in _require(data, "trackers", path)]

    async def get_priorities(self) -> list[NamedEntity]:
        path = "/enumerations/issue_priorities.json"
        data = await self.request(path)
        return [_decode(NamedEntity, p, path) for p in _require(data, "issue_priorities", path)]

    # ------------------------------------------------------------------
    # Issues

    async def _get_issue_list(self, path: str) -> IssueList:
        data = await self.request(path)
        _require(data, "issues", path)
        return _decode(IssueList, data, path)

    async def get_issues_assigned_to_me(self) -> IssueList:
        """Open issues assigned to the API key's user."""
        return await self._get_issue_list("/issues.json?status_id=open&assigned_to_id=me")

    async def get_open_issues_for_project(
        self,
        project_id: int,
        include_subprojects: bool = True
    ) -> IssueList:
        """Open issues of a project, optionally leaving out its subprojects."""
        path = f"/issues.json?status_id=open&project_id={project_id}"
        if not include_subprojects:
            path += "&subproject_id=!*"
        return await self._get_issue_list(path)

    async def get_issue_by_id(self, issue_id: int) -> Issue:
        path = f"/issues/{issue_id}.json"
        data = await self.request(path)
        return _decode(Issue, _require(data, "issue", path), path)

    async def set_issue_status(self, issue: Issue | int, status_id: int) -> Any:
        """Change an issue's status. Returns the server's acknowledgment."""
        issue_id = issue if isinstance(issue, int) else issue.id
        return await self.request(
            f"/issues/{issue_id}.json",
            "PUT",
            {"issue": {"status_id": status_id}},
        )

    async def create_issue(self, **fields: Any) -> Issue:
        """
        Create a new issue.

        Args:
            **fields: Any of project_id, tracker_id, priority_id, status_id,
                subject, description, estimated_hours, start_date, due_date,
                parent_issue_id, assigned_to_id. None values are left out.

        Returns:
            The created issue as echoed by the server
        """
        unknown = set(fields) - set(CREATE_ISSUE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown issue fields: {sorted(unknown)}")

        payload = {}
        for name, value in fields.items():
            if value is None:
                continue
            payload[name] = value.isoformat() if isinstance(value, date) else value

        path = "/issues.json"
        data = await self.request(path, "POST", {"issue": payload})
        issue = _decode(Issue, _require(data, "issue", path), path)
        logger.info(f"Created issue #{issue.id}: {issue.subject}")
        return issue

    async def create_sub_issue(self, parent_id: int, **fields: Any) -> Issue:
        """
        Create an issue under ``parent_id``.

        Project and tracker always come from the parent; passing either
        raises ValueError.
        """
        inherited = {"project_id", "tracker_id", "parent_issue_id"} & set(fields)
        if inherited:
            raise ValueError(f"Fields taken from the parent issue: {sorted(inherited)}")

        parent = await self.get_issue_by_id(parent_id)
        if parent.project is None or parent.tracker is None:
            raise ResponseError(f"Parent issue #{parent_id} has no project or tracker")

        return await self.create_issue(
            project_id=parent.project.id,
            tracker_id=parent.tracker.id,
            parent_issue_id=parent_id,
            **fields,
        )

    async def add_time_entry(
        self,
        issue_id: int,
        activity_id: int,
        hours: str | float,
        comment: str
    ) -> Any:
        """Log time on an issue. Returns the server's acknowledgment."""
        return await self.request(
            "/time_entries.json",
            "POST",
            {
                "time_entry": {
                    "issue_id": issue_id,
                    "activity_id": activity_id,
                    "hours": hours,
                    "comments": comment,
                }
            },
        )

    # ------------------------------------------------------------------
    # Projects and memberships

    async def get_projects(self) -> list[RedmineProject]:
        """Fetch every accessible project, page by page, in server order."""
        projects: list[RedmineProject] = []
        offset = 0
        while True:
            path = f"/projects.json?offset={offset}&limit={PROJECTS_PAGE_SIZE}"
            data = await self.request(path)
            page = _require(data, "projects", path)
            total_count = data.get("total_count", 0)

            projects.extend(RedmineProject(self, _decode(Project, p, path)) for p in page)
            offset += len(page)

            if not page or len(projects) >= total_count:
                break
        return projects

    async def get_memberships(self, project_id: int) -> list[Membership]:
        """Members of a project. Records carrying a 'user' are users, 'group' are groups."""
        path = f"/projects/{project_id}/memberships.json"
        data = await self.request(path)

        memberships = []
        for record in _require(data, "memberships", path):
            if record.get("user"):
                member, is_user = record["user"], True
            elif record.get("group"):
                member, is_user = record["group"], False
            else:
                logger.warning(f"Skipping membership without user or group: {record}")
                continue
            memberships.append(_decode(
                Membership,
                {"id": member.get("id"), "name": member.get("name", ""), "is_user": is_user},
                path,
            ))
        return memberships

    # ------------------------------------------------------------------
    # Quick update

    async def apply_quick_update(self, update: QuickUpdate) -> QuickUpdateResult:
        """
        Set status and assignee (and add a note) in one go, then re-read the
        issue to check what the server actually applied.

        A workflow can reject a transition while still answering with success,
        so mismatches are reported in the result instead of raised.
        """
        changes: dict[str, Any] = {
            "status_id": update.status.id,
            "assigned_to_id": update.assignee.id,
        }
        if update.message:
            changes["notes"] = update.message

        await self.request(f"/issues/{update.issue_id}.json", "PUT", {"issue": changes})
        issue = await self.get_issue_by_id(update.issue_id)

        result = QuickUpdateResult()
        if issue.status is None or issue.status.id != update.status.id:
            result.differences.append("Couldn't update status")
        if issue.assigned_to is None or issue.assigned_to.id != update.assignee.id:
            result.differences.append("Couldn't assign user")

        if result.differences:
            logger.warning(f"Quick update of #{update.issue_id} incomplete: {result.differences}")
        return result
