import pathlib

import pytest

from issueguard.client import TrackerError
from issueguard.config import load_config, validate_or_raise
from issueguard.exceptions import InvalidInput, InvalidParameterType, RateLimitExceeded, ValidationError
from issueguard.guard import Guard

EXAMPLE_CONFIG = pathlib.Path(__file__).resolve().parents[1] / "examples" / "config.yaml"
TOKEN = "deadbeef" * 5


class FakeTime:
    def __init__(self) -> None:
        self._now = 0.0

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def time(self) -> float:
        return self._now


async def echo(params: dict) -> dict:
    return {"echo": params}


def make_guard(clock: FakeTime | None = None, **rate_limit) -> Guard:
    config = validate_or_raise(
        {"baseUrl": "https://tracker.example.com", "credential": "live-credential", "rateLimit": rate_limit}
    )
    return Guard(config, time_func=(clock or FakeTime()).time)


@pytest.mark.asyncio
async def test_guard_allows_tool() -> None:
    guard = make_guard()
    result = await guard.dispatch("list-issues", {"project_id": 1}, echo, expected_types={"project_id": "integer"})
    assert result == {"echo": {"project_id": 1}}
    assert guard.health.get_request_metrics().success == 1
    assert guard.admission.get_count("list-issues") == 1


@pytest.mark.asyncio
async def test_guard_rejects_dangerous_input_before_remote_call() -> None:
    guard = make_guard()
    called = []

    async def handler(params: dict) -> None:
        called.append(params)

    with pytest.raises(InvalidInput):
        await guard.dispatch("create-issue", {"subject": "1; DROP TABLE issues; --"}, handler)
    assert not called
    metrics = guard.health.get_request_metrics()
    assert metrics.errors == 1
    assert metrics.rate_limited == 0


@pytest.mark.asyncio
async def test_guard_rejects_wrong_types() -> None:
    guard = make_guard()
    with pytest.raises(InvalidParameterType):
        await guard.dispatch("get-issue", {"id": "7"}, echo, expected_types={"id": "integer"})


@pytest.mark.asyncio
async def test_guard_rate_limit() -> None:
    clock = FakeTime()
    guard = make_guard(clock, toolLimits={"create-issue": 3}, windowMs=1000)
    for _ in range(3):
        await guard.dispatch("create-issue", {}, echo)
    with pytest.raises(RateLimitExceeded):
        await guard.dispatch("create-issue", {}, echo)
    assert guard.health.get_request_metrics().rate_limited == 1

    clock.advance(1.0)
    await guard.dispatch("create-issue", {}, echo)


@pytest.mark.asyncio
async def test_guard_sanitizes_remote_failures() -> None:
    guard = make_guard()

    async def failing(params: dict) -> None:
        raise TrackerError(f"Server error: token {TOKEN} for live-credential at /var/app/x.py")

    with pytest.raises(TrackerError) as excinfo:
        await guard.dispatch("get-issue", {"id": 1}, failing)
    message = str(excinfo.value)
    assert TOKEN not in message
    assert "live-credential" not in message
    assert message == "Server error: token [REDACTED] for [REDACTED] at [PATH_REDACTED]"
    assert excinfo.value.__cause__ is None


@pytest.mark.asyncio
async def test_guard_passes_validation_errors_unchanged() -> None:
    guard = make_guard()

    async def failing(params: dict) -> None:
        raise ValidationError(message="subject cannot be empty", field="subject")

    with pytest.raises(ValidationError) as excinfo:
        await guard.dispatch("create-issue", {}, failing)
    assert excinfo.value.message == "subject cannot be empty"


@pytest.mark.asyncio
async def test_wrap_tool() -> None:
    guard = Guard(load_config(EXAMPLE_CONFIG))

    @guard.wrap_tool(tool_name="create-issue", expected_types={"subject": "string"})
    async def create_issue(project_id: int, subject: str) -> dict:
        return {"project_id": project_id, "subject": subject}

    assert await create_issue(project_id=1, subject="Login page is slow") == {
        "project_id": 1,
        "subject": "Login page is slow",
    }
    with pytest.raises(InvalidInput):
        await create_issue(project_id=1, subject="<script>alert(1)</script>")
    await create_issue(project_id=1, subject="Broken export")
    with pytest.raises(RateLimitExceeded):
        await create_issue(project_id=1, subject="Typo")


def test_wrap_tool_requires_async() -> None:
    guard = make_guard()
    with pytest.raises(TypeError):
        guard.wrap_tool(lambda: None)


@pytest.mark.asyncio
async def test_check_health() -> None:
    guard = make_guard()

    async def probe() -> None:
        raise TrackerError("Authentication failed: Invalid API key", status_code=401)

    snapshot = await guard.check_health(probe, tool_count=5)
    assert snapshot.remote.status == "error"
    assert snapshot.status == "degraded"
