"""Async client for the issue tracker REST API."""

from __future__ import annotations

from typing import Any

import httpx

from .config import GuardConfig
from .exceptions import ValidationError

DEFAULT_TIMEOUT_MS = 10000


class TrackerError(RuntimeError):
    """Raised when a tracker API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def validate_id(value: Any, field: str = "id") -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(message=f"{field} must be a positive integer", field=field)


def validate_pagination(params: dict[str, Any]) -> None:
    limit = params.get("limit")
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= 100):
        raise ValidationError(message="limit must be a positive integer between 1 and 100", field="limit")
    offset = params.get("offset")
    if offset is not None and (isinstance(offset, bool) or not isinstance(offset, int) or offset < 0):
        raise ValidationError(message="offset must be a non-negative integer", field="offset")


class TrackerClient:
    """Maps list/get/create/update onto the tracker's JSON endpoints."""

    def __init__(
        self,
        config: GuardConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        timeout_ms = config.timeout or DEFAULT_TIMEOUT_MS
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            transport=transport,
            timeout=timeout_ms / 1000.0,
            headers={"X-Redmine-API-Key": config.credential, "Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json_body, params=params)
        except httpx.TimeoutException as exc:
            raise TrackerError("Request timeout: The server took too long to respond") from exc
        except httpx.TransportError as exc:
            raise TrackerError("Network error: Unable to connect to the issue tracker") from exc
        self._raise_for_status(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        try:
            payload = response.json()
        except ValueError:
            payload = None
        detail = payload.get("error") if isinstance(payload, dict) else None
        if status == 401:
            message = f"Authentication failed: {detail or 'Invalid API key'}"
        elif status == 403:
            message = f"Access forbidden: {detail or 'Insufficient permissions'}"
        elif status == 404:
            message = f"Resource not found: {detail or 'The requested resource does not exist'}"
        elif status == 422:
            errors = payload.get("errors") if isinstance(payload, dict) else None
            if isinstance(errors, dict):
                summary = "; ".join(f"{name}: {', '.join(map(str, msgs))}" for name, msgs in errors.items())
            elif isinstance(errors, list):
                summary = "; ".join(map(str, errors))
            else:
                summary = ""
            message = f"Validation failed: {summary or 'Invalid data provided'}"
        elif status >= 500:
            message = f"Server error: {detail or 'Internal server error occurred'}"
        else:
            message = f"Request failed: {response.reason_phrase or 'Unknown error'}"
        raise TrackerError(message, status_code=status)

    async def list_issues(self, **params: Any) -> dict[str, Any]:
        validate_pagination(params)
        for field in ("project_id", "assigned_to_id", "parent_id"):
            if field in params:
                validate_id(params[field], field)
        return await self._request_json("GET", "/issues.json", params=params or None)

    async def get_issue(self, issue_id: int) -> dict[str, Any]:
        validate_id(issue_id)
        data = await self._request_json("GET", f"/issues/{issue_id}.json")
        return data["issue"]

    async def create_issue(self, issue: dict[str, Any]) -> dict[str, Any]:
        validate_id(issue.get("project_id"), "project_id")
        subject = issue.get("subject")
        if not isinstance(subject, str) or not subject.strip():
            raise ValidationError(message="subject cannot be empty", field="subject")
        data = await self._request_json("POST", "/issues.json", json_body={"issue": issue})
        return data["issue"]

    async def update_issue(self, issue_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        validate_id(issue_id)
        await self._request_json("PUT", f"/issues/{issue_id}.json", json_body={"issue": changes})
        return await self.get_issue(issue_id)

    async def probe(self) -> None:
        """Minimal read-only call used for liveness checks."""

        await self.list_issues(limit=1)
