"""Shared fixtures: an in-memory Redmine served through httpx.MockTransport."""

import json
import re

import httpx
import pytest

from redmine_app.tools.redmine import RedmineServer

BASE_URL = "https://redmine.test"

ALL_PROJECTS = [
    {"id": 1, "name": "Project One", "identifier": "proj1", "description": ""},
    {"id": 2, "name": "Project Two", "identifier": "proj2", "description": "Second\nproject"},
    {"id": 3, "name": "Project Three", "identifier": "proj3", "parent": {"id": 1, "name": "Project One"}},
]


def _issue(issue_id: int, status: dict, assigned_to: dict) -> dict:
    return {
        "id": issue_id,
        "subject": "Test issue",
        "status": status,
        "tracker": {"id": 1, "name": "Bug"},
        "author": {"id": 1, "name": "John Doe"},
        "project": {"id": 1, "name": "Test Project"},
        "assigned_to": assigned_to,
        "start_date": "2025-11-03",
        "due_date": "2025-11-14",
        "estimated_hours": 40,
        "spent_hours": 5,
        "done_ratio": 10,
    }


class FakeRedmine:
    """Routes requests like a small Redmine instance and records them.

    Issue 999 never takes the requested assignee and issue 998 never takes
    the requested status, mimicking a server that acknowledges a PUT it did
    not apply.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path, params = request.method, request.url.path, request.url.params

        if method == "GET" and path == "/issues.json":
            return httpx.Response(200, json={
                "issues": [_issue(123, {"id": 1, "name": "New"}, {"id": 1, "name": "John Doe"})],
                "total_count": 1,
            })

        match = re.fullmatch(r"/issues/(\d+)\.json", path)
        if match:
            issue_id = int(match.group(1))
            if method == "PUT":
                return httpx.Response(200, json={"success": True})
            if method == "GET":
                if issue_id == 404:
                    return httpx.Response(404, json={"error": "Not found"})
                status = {"id": 1, "name": "New"} if issue_id == 998 else {"id": 2, "name": "In Progress"}
                assigned_to = {"id": 1, "name": "John Doe"} if issue_id == 999 else {"id": 2, "name": "Jane Doe"}
                if issue_id == 123:
                    status, assigned_to = {"id": 1, "name": "New"}, {"id": 1, "name": "John Doe"}
                return httpx.Response(200, json={"issue": _issue(issue_id, status, assigned_to)})

        if method == "POST" and path == "/issues.json":
            fields = json.loads(request.content)["issue"]
            return httpx.Response(201, json={"issue": {"id": 501, **fields}})

        if method == "GET" and path == "/projects.json":
            offset = int(params.get("offset", 0))
            limit = int(params.get("limit", 50))
            return httpx.Response(200, json={
                "projects": ALL_PROJECTS[offset:offset + limit],
                "total_count": len(ALL_PROJECTS),
                "offset": offset,
                "limit": limit,
            })

        if method == "GET" and path == "/issue_statuses.json":
            return httpx.Response(200, json={"issue_statuses": [
                {"id": 1, "name": "New"},
                {"id": 2, "name": "In Progress"},
            ]})

        if method == "GET" and path == "/time_entry_activities.json":
            return httpx.Response(200, json={"time_entry_activities": [{"id": 9, "name": "Development"}]})

        if method == "GET" and path == "/trackers.json":
            return httpx.Response(200, json={"trackers": [{"id": 1, "name": "Bug"}, {"id": 2, "name": "Feature"}]})

        if method == "GET" and path == "/enumerations/issue_priorities.json":
            return httpx.Response(200, json={"issue_priorities": [{"id": 2, "name": "Normal"}]})

        if method == "GET" and re.fullmatch(r"/projects/\d+/memberships\.json", path):
            return httpx.Response(200, json={"memberships": [
                {"id": 10, "user": {"id": 1, "name": "John Doe"}},
                {"id": 11, "group": {"id": 7, "name": "Developers"}},
            ]})

        if method == "POST" and path == "/time_entries.json":
            return httpx.Response(201, json={"time_entry": {"id": 1}})

        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture
def fake_redmine() -> FakeRedmine:
    return FakeRedmine()


@pytest.fixture
def server(fake_redmine: FakeRedmine) -> RedmineServer:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_redmine))
    return RedmineServer.from_options(BASE_URL, "test-api-key", client=client)
