import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from issueguard.config import RateLimitSettings
from issueguard.exceptions import RateLimitExceeded
from issueguard.rate_limit import DEFAULT_OPERATION_LIMIT, AdmissionController


class FakeTime:
    def __init__(self) -> None:
        self._now = 0.0

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def time(self) -> float:
        return self._now


def make_controller(clock: FakeTime, **kwargs) -> AdmissionController:
    settings = RateLimitSettings(**kwargs)
    return AdmissionController(settings, time_func=clock.time)


def test_operation_limit_enforced() -> None:
    clock = FakeTime()
    controller = make_controller(clock, window_ms=60000, tool_limits={"create-issue": 2})

    controller.check_and_consume("create-issue")
    controller.check_and_consume("create-issue")
    with pytest.raises(RateLimitExceeded) as excinfo:
        controller.check_and_consume("create-issue")
    assert excinfo.value.scope == "operation"
    assert controller.get_count("create-issue") == 2
    assert controller.global_count == 2
    assert controller.get_remaining("create-issue") == 0


def test_global_limit_checked_first() -> None:
    clock = FakeTime()
    controller = make_controller(clock, max_requests=3)

    controller.check_and_consume("list-issues")
    controller.check_and_consume("get-issue")
    controller.check_and_consume("update-issue")
    with pytest.raises(RateLimitExceeded) as excinfo:
        controller.check_and_consume("create-issue")
    assert excinfo.value.scope == "global"
    assert controller.get_count("create-issue") == 0
    assert controller.global_count == 3


def test_unknown_operation_uses_default_limit() -> None:
    clock = FakeTime()
    controller = make_controller(clock, tool_limits={"create-issue": 5})

    assert controller.get_limit("no-such-tool") == DEFAULT_OPERATION_LIMIT
    for _ in range(DEFAULT_OPERATION_LIMIT):
        controller.check_and_consume("no-such-tool")
    with pytest.raises(RateLimitExceeded):
        controller.check_and_consume("no-such-tool")


def test_window_expiry_resets_every_bucket() -> None:
    clock = FakeTime()
    controller = make_controller(clock, window_ms=1000, tool_limits={"a": 1, "b": 1})

    controller.check_and_consume("a")
    clock.advance(0.9)
    controller.check_and_consume("b")
    with pytest.raises(RateLimitExceeded):
        controller.check_and_consume("a")

    # "b" was admitted only 0.1s ago but is wiped with the rest of the window
    clock.advance(0.1)
    assert controller.get_count("a") == 0
    assert controller.get_count("b") == 0
    assert controller.global_count == 0
    controller.check_and_consume("a")
    controller.check_and_consume("b")


def test_failed_check_does_not_increment() -> None:
    clock = FakeTime()
    controller = make_controller(clock, tool_limits={"get-issue": 1})

    controller.check_and_consume("get-issue")
    for _ in range(3):
        with pytest.raises(RateLimitExceeded):
            controller.check_and_consume("get-issue")
    assert controller.get_count("get-issue") == 1
    assert controller.global_count == 1


def test_explicit_reset() -> None:
    clock = FakeTime()
    controller = make_controller(clock)

    controller.check_and_consume("list-issues")
    controller.reset()
    assert controller.get_count("list-issues") == 0
    assert controller.global_count == 0


def test_concurrent_threads_admit_exactly_the_limit() -> None:
    clock = FakeTime()
    controller = make_controller(clock, tool_limits={"list-issues": 50})
    barrier = threading.Barrier(8)

    def worker() -> tuple[int, int]:
        admitted = rejected = 0
        barrier.wait()
        for _ in range(25):
            try:
                controller.check_and_consume("list-issues")
            except RateLimitExceeded:
                rejected += 1
            else:
                admitted += 1
        return admitted, rejected

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = [future.result() for future in [pool.submit(worker) for _ in range(8)]]

    assert sum(admitted for admitted, _ in results) == 50
    assert sum(rejected for _, rejected in results) == 8 * 25 - 50
    assert controller.global_count == 50
    assert controller.get_count("list-issues") == 50
