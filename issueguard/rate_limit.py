"""Fixed-window admission control."""

from __future__ import annotations

import threading
import time
from types import MappingProxyType
from typing import Callable, Mapping

from .config import RateLimitSettings
from .exceptions import RateLimitExceeded
from .types import RateWindow

DEFAULT_OPERATION_LIMIT = 60

TimeFunc = Callable[[], float]


class AdmissionController:
    """Global and per-operation request counters over one shared window.

    State is process-local. When the window expires every bucket is reset at
    the same moment; buckets never expire independently.
    """

    def __init__(
        self,
        settings: RateLimitSettings,
        *,
        time_func: TimeFunc | None = None,
        default_limit: int = DEFAULT_OPERATION_LIMIT,
    ) -> None:
        self.settings = settings
        self.window_seconds = settings.window_ms / 1000.0
        self.global_max = settings.max_requests
        self.operation_limits: Mapping[str, int] = MappingProxyType(dict(settings.tool_limits))
        self.default_limit = default_limit
        self._time = time_func or time.monotonic
        self._window = RateWindow(window_start=self._time())
        self._lock = threading.Lock()

    def _maybe_reset(self) -> None:
        now = self._time()
        if now - self._window.window_start >= self.window_seconds:
            self._window.reset(now)

    def get_limit(self, operation: str) -> int:
        return self.operation_limits.get(operation, self.default_limit)

    def check_and_consume(self, operation: str) -> None:
        """Admit one call for ``operation`` or raise RateLimitExceeded."""

        with self._lock:
            self._maybe_reset()
            window = self._window
            if window.global_count >= self.global_max:
                raise RateLimitExceeded(message="Global rate limit exceeded", scope="global")
            current = window.per_operation_counts.get(operation, 0)
            if current >= self.get_limit(operation):
                raise RateLimitExceeded(
                    message=f"Rate limit exceeded for tool {operation}",
                    scope="operation",
                    details={"tool": operation},
                )
            window.per_operation_counts[operation] = current + 1
            window.global_count += 1

    def get_count(self, operation: str) -> int:
        with self._lock:
            self._maybe_reset()
            return self._window.per_operation_counts.get(operation, 0)

    @property
    def global_count(self) -> int:
        with self._lock:
            self._maybe_reset()
            return self._window.global_count

    def get_remaining(self, operation: str) -> int:
        with self._lock:
            self._maybe_reset()
            window = self._window
            per_op = self.get_limit(operation) - window.per_operation_counts.get(operation, 0)
            return max(0, min(per_op, self.global_max - window.global_count))

    def reset(self) -> None:
        with self._lock:
            self._window.reset(self._time())
