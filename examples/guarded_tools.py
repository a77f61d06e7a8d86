"""Example tool functions guarded by issueguard."""

import asyncio

from issueguard import Guard, load_config
from issueguard.exceptions import IssueGuardException

config = load_config("examples/config.yaml")
guard = Guard(config)


@guard.wrap_tool(tool_name="create-issue", expected_types={"project_id": "integer", "subject": "string"})
async def create_issue(project_id: int, subject: str) -> dict[str, object]:
    return {"issue": {"id": 1, "project_id": project_id, "subject": subject}}


async def main() -> None:
    for subject in ["Login page is slow", "<script>alert(1)</script>", "Broken export", "Typo on home page"]:
        try:
            print(await create_issue(project_id=1, subject=subject))
        except IssueGuardException as exc:
            print(f"DENY: {type(exc).__name__}: {exc}")
    print(guard.health.get_request_metrics().to_dict())


if __name__ == "__main__":
    asyncio.run(main())
