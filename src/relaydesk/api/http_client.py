"""HTTP clients for the automation backend.

Thin wrappers around httpx. Every failure is converted at this boundary:
401 raises AuthError, any other non-2xx status, unreadable body or
transport failure raises RequestError. Nothing httpx-specific escapes, so
services never need to know about the HTTP library.
"""

import logging
from typing import Any

import httpx

from relaydesk.errors import AuthError, MalformedResponseError, RequestError
from relaydesk.protocol import JobRecord
from relaydesk.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)


class BaseApiClient:
    """Shared request/response handling for the REST collaborators."""

    def __init__(self, base_url: str, timeout: float = 30.0,
                 access_token: str = ""):
        """Initialize with the service base URL.

        Args:
            base_url: The service's HTTP base URL.
            timeout: Per-request timeout in seconds.
            access_token: Bearer token; omitted from requests when empty.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._access_token = access_token
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        """Open httpx async client."""
        headers = {"Content-Type": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=headers,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close httpx async client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and convert failures into domain errors.

        Raises:
            AuthError: On HTTP 401.
            RequestError: On any other non-2xx status or transport failure.
        """
        if self._client is None:
            raise RuntimeError(f"{type(self).__name__} used outside 'async with'")
        resource = f"{method} {path}"
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s failed (transport): %s", resource, exc)
            raise RequestError(f"{resource} failed: {exc}") from exc

        if resp.status_code == 401:
            logger.warning("%s rejected with 401", resource)
            raise AuthError(resource)
        if resp.status_code >= 400:
            detail = self._error_detail(resp)
            logger.warning("%s returned HTTP %s: %s", resource, resp.status_code, detail)
            raise RequestError(detail, status_code=resp.status_code)
        return resp

    @staticmethod
    def _error_detail(resp: httpx.Response) -> str:
        """Pull a human-readable reason out of an error response."""
        detail = None
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("message") or body.get("error") or body.get("detail")
        if not detail:
            detail = f"HTTP {resp.status_code} {resp.reason_phrase}".strip()
        return sanitize_error_message(str(detail)) or ""

    @staticmethod
    def _json_body(resp: httpx.Response) -> dict:
        """Decode a JSON object body.

        Raises:
            MalformedResponseError: If the body is not a JSON object.
        """
        try:
            body = resp.json()
        except ValueError as exc:
            raise MalformedResponseError("invalid JSON", resp.status_code) from exc
        if not isinstance(body, dict):
            raise MalformedResponseError(
                f"expected an object, got {type(body).__name__}", resp.status_code,
            )
        return body


class AutomationClient(BaseApiClient):
    """Client for the Job Listing and Job Control APIs.

    The same backend also serves the operator's platform connections,
    which carry the messaging session cookies.
    """

    async def list_automations(self) -> list[JobRecord]:
        """List automations via GET /api/automation.

        Rows without an id cannot be reconciled and are skipped.

        Returns:
            JobRecord objects in API order.
        """
        resp = await self._request("GET", "/api/automation")
        body = self._json_body(resp)
        if body.get("status") != "success":
            raise RequestError(
                sanitize_error_message(body.get("message")) or "Failed to fetch automations",
                status_code=resp.status_code,
            )
        data = body.get("data")
        rows = (data.get("automations") or []) if isinstance(data, dict) else []
        records = []
        for row in rows:
            if not isinstance(row, dict) or row.get("id") in (None, ""):
                logger.warning("Skipping automation row without id: %r", row)
                continue
            records.append(JobRecord.from_api(row))
        return records

    async def pause(self, automation_id: str) -> str:
        """Pause via POST /api/automation/{id}/pause.

        Returns:
            Confirmation message from the server.
        """
        return await self._control("POST", f"/api/automation/{automation_id}/pause",
                                   "Automation paused successfully")

    async def resume(self, automation_id: str) -> str:
        """Resume via POST /api/automation/{id}/resume.

        Returns:
            Confirmation message from the server.
        """
        return await self._control("POST", f"/api/automation/{automation_id}/resume",
                                   "Automation resumed successfully")

    async def delete(self, automation_id: str) -> str:
        """Delete via DELETE /api/automation/{id}.

        Returns:
            Confirmation message from the server.
        """
        return await self._control("DELETE", f"/api/automation/{automation_id}",
                                   "Automation deleted successfully")

    async def _control(self, method: str, path: str, default_message: str) -> str:
        resp = await self._request(method, path)
        try:
            body = resp.json()
        except ValueError:
            return default_message
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return default_message

    async def list_platform_connections(self) -> list[dict]:
        """List connected platforms via GET /api/platform-connections.

        Returns:
            Raw connection records; an unsuccessful body yields an empty list.
        """
        resp = await self._request("GET", "/api/platform-connections")
        body = self._json_body(resp)
        data = body.get("data")
        if not body.get("success") or not isinstance(data, list):
            return []
        return [c for c in data if isinstance(c, dict)]
