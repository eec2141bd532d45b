"""
redmine_app HTTP API

Read-only FastAPI surface over the Redmine client and the planning
calculators. Configure with REDMINE_URL and REDMINE_API_KEY (see .env).
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from functools import lru_cache

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from redmine_app.config import Settings, equivalent, load_settings
from redmine_app.planning import DEFAULT_SCHEDULE, FlexibilityCalculator, WeeklySchedule, calculate_workload
from redmine_app.tools.errors import ConfigurationError, RedmineError, ResponseError, TransportError
from redmine_app.tools.redmine import RedmineServer

load_dotenv()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# One client per logical server, reused across requests
_servers: list[RedmineServer] = []
_flexibility = FlexibilityCalculator()
_flexibility_day: date | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close every client opened while serving."""
    yield
    for server in _servers:
        await server.aclose()
    _servers.clear()
    logger.info("Closed Redmine clients")


app = FastAPI(
    title="redmine_app",
    description="Redmine issues with workload and flexibility planning",
    version="0.1.0",
    lifespan=lifespan
)


@lru_cache
def get_settings() -> Settings:
    """Settings read once from the environment and reused for every request."""
    return load_settings()


async def get_server(settings: Settings = Depends(get_settings)) -> RedmineServer:
    """Return the client for the configured server, creating it on first use."""
    descriptor = settings.descriptor()
    for server in _servers:
        if equivalent(server.options, descriptor):
            return server

    server = RedmineServer.from_options(
        settings.url,
        settings.api_key,
        settings.additional_headers,
        logging_enabled=settings.logging_enabled,
    )
    _servers.append(server)
    logger.info(f"Connected to Redmine at {settings.url}")
    return server


def get_schedule(settings: Settings = Depends(get_settings)) -> WeeklySchedule:
    return settings.weekly_schedule or DEFAULT_SCHEDULE


@app.exception_handler(RedmineError)
async def redmine_error_handler(request: Request, exc: RedmineError):
    if isinstance(exc, ConfigurationError):
        status_code = 500
    elif isinstance(exc, TransportError):
        status_code = 503
    elif isinstance(exc, ResponseError):
        status_code = 502
    else:
        status_code = 500
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/")
async def root():
    """API root - shows available endpoints."""
    return {
        "service": "redmine_app",
        "version": "0.1.0",
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "my_issues": "/issues/mine",
            "issue": "/issues/{issue_id}",
            "projects": "/projects",
            "workload": "/workload"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "redmine_app"}


@app.get("/issues/mine")
async def my_issues(server: RedmineServer = Depends(get_server)):
    """Open issues assigned to the configured user."""
    return await server.get_issues_assigned_to_me()


@app.get("/issues/{issue_id}")
async def get_issue(issue_id: int, server: RedmineServer = Depends(get_server)):
    """Fetch a single issue by id."""
    return await server.get_issue_by_id(issue_id)


@app.get("/projects")
async def list_projects(server: RedmineServer = Depends(get_server)):
    """All accessible projects as selection-list items."""
    projects = await server.get_projects()
    return [p.to_pick_item().model_dump(exclude={"project"}) for p in projects]


@app.get("/workload")
async def workload(
    today: date | None = None,
    server: RedmineServer = Depends(get_server),
    schedule: WeeklySchedule = Depends(get_schedule)
):
    """Workload summary and per-issue flexibility for my open issues."""
    global _flexibility_day

    today = today or date.today()
    if _flexibility_day != today:
        _flexibility.clear_cache()
        _flexibility_day = today

    issues = (await server.get_issues_assigned_to_me()).issues
    summary = calculate_workload(issues, schedule, today)

    flexibility = {}
    for issue in issues:
        result = _flexibility.calculate(issue, schedule, today)
        if result is not None:
            flexibility[issue.id] = result

    return {"summary": summary, "flexibility": flexibility}
