"""HTTP request executor for the Redmine REST API."""

import json
import logging
from typing import Any, Optional

import httpx

from redmine_app.config import ConnectionDescriptor
from redmine_app.tools.errors import ResponseError, TransportError

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
API_KEY_HEADER = "X-Redmine-API-Key"


class RequestExecutor:
    """Sends requests to one Redmine server and returns the parsed JSON body."""

    def __init__(self, descriptor: ConnectionDescriptor, client: httpx.AsyncClient | None = None):
        self.descriptor = descriptor
        # No timeout: callers that need one wrap the call themselves
        self.client = client or httpx.AsyncClient(timeout=None)

    def _headers(self) -> dict[str, str]:
        headers = self.descriptor.headers
        headers[API_KEY_HEADER] = self.descriptor.key
        return headers

    def _url(self, path: str) -> str:
        return self.descriptor.address.rstrip("/") + "/" + path.lstrip("/")

    async def execute(self, path: str, method: str = "GET", body: Optional[Any] = None) -> Any:
        """
        Issue a request and parse the response body as JSON.

        The parsed body is returned whatever the status code; callers decide
        what a non-2xx payload means.

        Args:
            path: Path relative to the server address, query string included
            method: One of GET, POST, PUT, DELETE, PATCH
            body: JSON-serializable request body

        Raises:
            TransportError: the connection failed before a response arrived
            ResponseError: the response body is not JSON
        """
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        try:
            response = await self.client.request(
                method,
                self._url(path),
                headers=self._headers(),
                json=body,
            )
        except httpx.TransportError as e:
            raise TransportError(f"Failed to connect to Redmine: {e}", cause=e) from e

        if not response.is_success:
            logger.warning(f"{method} {path} returned HTTP {response.status_code}")

        if not response.content.strip():
            return None

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseError(
                f"{method} {path} returned a non-JSON body (HTTP {response.status_code})"
            ) from e

    async def aclose(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
