"""
Connection configuration for redmine_app.

Validates the server address and API key before anything talks to the
network, and loads settings from the environment (with .env support).
"""

import json
import os
from typing import Optional

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError

from redmine_app.planning.models import WeeklySchedule
from redmine_app.tools.errors import ConfigurationError


class ConnectionDescriptor(BaseModel):
    """Validated, immutable connection settings for one Redmine server."""
    model_config = ConfigDict(frozen=True)

    address: str
    key: str
    additional_headers: tuple[tuple[str, str], ...] = ()

    @property
    def headers(self) -> dict[str, str]:
        """Additional headers as a fresh dict."""
        return dict(self.additional_headers)


def create_descriptor(
    address: str,
    key: str,
    additional_headers: Optional[dict[str, str]] = None
) -> ConnectionDescriptor:
    """
    Validate connection options and build a descriptor.

    Args:
        address: HTTPS URL of the Redmine server, e.g. "https://example.com:8443/redmine"
        key: Redmine API key
        additional_headers: Extra headers sent with every request

    Raises:
        ConfigurationError: if the address is empty, not an absolute URL,
            not https, or the key is empty
    """
    if not address:
        raise ConfigurationError("Address cannot be empty")

    try:
        url = httpx.URL(address)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Invalid URL '{address}': {e}") from e

    if not url.is_absolute_url:
        raise ConfigurationError(f"Invalid URL '{address}': must be absolute")

    # HTTP is never allowed
    if url.scheme != "https":
        raise ConfigurationError(f"HTTPS required, got '{url.scheme}' in '{address}'")

    if not key:
        raise ConfigurationError("API key cannot be empty")

    headers = tuple((str(k), str(v)) for k, v in (additional_headers or {}).items())
    return ConnectionDescriptor(address=address, key=key, additional_headers=headers)


def equivalent(a: ConnectionDescriptor, b: ConnectionDescriptor) -> bool:
    """Two descriptors point at the same logical server if address and key match exactly."""
    return a.address == b.address and a.key == b.key


class Settings(BaseModel):
    """Runtime settings loaded from the environment."""
    url: str
    api_key: str
    additional_headers: dict[str, str] = {}
    logging_enabled: bool = True
    weekly_schedule: Optional[WeeklySchedule] = None

    def descriptor(self) -> ConnectionDescriptor:
        return create_descriptor(self.url, self.api_key, self.additional_headers)


def _read_json_object(name: str) -> Optional[dict]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{name} is not valid JSON: {e}") from e
    if not isinstance(value, dict):
        raise ConfigurationError(f"{name} must be a JSON object")
    return value


def _read_schedule(name: str) -> Optional[WeeklySchedule]:
    hours = _read_json_object(name)
    if hours is None:
        return None
    try:
        return WeeklySchedule.model_validate(hours)
    except ValidationError as e:
        raise ConfigurationError(f"{name} is not a valid weekly schedule: {e}") from e


def load_settings() -> Settings:
    """Load settings from environment variables (with .env support)."""
    load_dotenv()

    url = os.getenv("REDMINE_URL", "").strip()
    api_key = os.getenv("REDMINE_API_KEY", "").strip()

    missing = [name for name, value in (("REDMINE_URL", url), ("REDMINE_API_KEY", api_key)) if not value]
    if missing:
        raise ConfigurationError(
            "Missing required environment variables: " + ", ".join(missing)
        )

    logging_enabled = os.getenv("REDMINE_LOGGING_ENABLED", "true").strip().lower()

    return Settings(
        url=url,
        api_key=api_key,
        additional_headers=_read_json_object("REDMINE_ADDITIONAL_HEADERS") or {},
        logging_enabled=logging_enabled not in ("0", "false", "no", "off"),
        weekly_schedule=_read_schedule("REDMINE_WEEKLY_SCHEDULE"),
    )
