"""Tool table exposing the tracker client as named operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from .client import TrackerClient

HEALTH_CHECK = "health-check"


@dataclass(frozen=True, slots=True)
class Tool:
    name: str
    description: str
    handler: Callable[[dict[str, Any]], Awaitable[Any]]
    expected_types: dict[str, Union[str, tuple[str, ...]]] = field(default_factory=dict)


def build_tools(client: TrackerClient) -> dict[str, Tool]:
    async def list_issues(params: dict[str, Any]) -> Any:
        return await client.list_issues(**params)

    async def get_issue(params: dict[str, Any]) -> Any:
        return await client.get_issue(params.get("id"))

    async def create_issue(params: dict[str, Any]) -> Any:
        return await client.create_issue(dict(params))

    async def update_issue(params: dict[str, Any]) -> Any:
        changes = dict(params)
        issue_id = changes.pop("id", None)
        return await client.update_issue(issue_id, changes)

    tools = [
        Tool(
            name="list-issues",
            description="List issues with optional filtering",
            handler=list_issues,
            expected_types={
                "project_id": "integer",
                "tracker_id": "integer",
                "status_id": ("integer", "string"),
                "assigned_to_id": "integer",
                "limit": "integer",
                "offset": "integer",
                "sort": "string",
            },
        ),
        Tool(
            name="get-issue",
            description="Get details of a specific issue",
            handler=get_issue,
            expected_types={"id": "integer"},
        ),
        Tool(
            name="create-issue",
            description="Create a new issue",
            handler=create_issue,
            expected_types={
                "project_id": "integer",
                "subject": "string",
                "description": "string",
                "priority_id": "integer",
                "assigned_to_id": "integer",
                "estimated_hours": "number",
                "done_ratio": "integer",
            },
        ),
        Tool(
            name="update-issue",
            description="Update an existing issue",
            handler=update_issue,
            expected_types={
                "id": "integer",
                "subject": "string",
                "description": "string",
                "status_id": "integer",
                "assigned_to_id": "integer",
                "done_ratio": "integer",
                "notes": "string",
            },
        ),
    ]
    return {tool.name: tool for tool in tools}
