"""Core guard middleware."""

from __future__ import annotations

import inspect
import logging
import time
from functools import wraps
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from . import __version__
from .audit import AuditLogger
from .config import GuardConfig
from .exceptions import IssueGuardException, RateLimitExceeded, ValidationError
from .health import HealthMonitor, Probe
from .heuristics import InputGuard
from .rate_limit import AdmissionController
from .sanitizer import ErrorSanitizer
from .types import DangerPattern, HealthSnapshot

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[Any]]
GuardedTool = Callable[..., Awaitable[Any]]
ExpectedTypes = Mapping[str, Union[str, Iterable[str]]]


class Guard:
    """Runs every tool call through admission, input screening and redaction.

    One Guard owns the rate window and request counters for the process;
    pass it by reference to whatever exposes the tools.
    """

    def __init__(
        self,
        config: GuardConfig,
        *,
        time_func: Callable[[], float] | None = None,
        patterns: Iterable[DangerPattern] | None = None,
        health: HealthMonitor | None = None,
    ) -> None:
        self.config = config
        self.admission = AdmissionController(config.rate_limit_settings, time_func=time_func)
        self.input_guard = InputGuard(patterns)
        self.sanitizer = ErrorSanitizer(secrets=[config.credential])
        self.health = health or HealthMonitor(time_func=time_func)
        self.audit = AuditLogger(config.logging_level, version=__version__)

    def check(self, tool_name: str, params: Any, expected_types: ExpectedTypes | None = None) -> None:
        """Raise before any remote work if the call must be rejected."""

        self.admission.check_and_consume(tool_name)
        self.input_guard.validate(params)
        if expected_types and isinstance(params, Mapping):
            self.input_guard.validate_types(params, expected_types)

    async def dispatch(
        self,
        tool_name: str,
        params: dict[str, Any] | None,
        handler: Handler,
        *,
        expected_types: ExpectedTypes | None = None,
    ) -> Any:
        params = params or {}
        start = time.perf_counter()
        try:
            self.check(tool_name, params, expected_types)
            result = await handler(params)
        except IssueGuardException as exc:
            rate_limited = isinstance(exc, RateLimitExceeded)
            self.health.record_outcome(False, rate_limited=rate_limited)
            sanitized = self.sanitizer.sanitize(exc)
            self.audit.log(
                tool=tool_name,
                decision="deny" if isinstance(exc, (RateLimitExceeded, ValidationError)) else "error",
                reason=str(sanitized),
                category=type(exc).__name__,
                latency_ms=self._elapsed_ms(start),
            )
            if sanitized is exc:
                raise
            raise sanitized from None
        except Exception as exc:
            self.health.record_outcome(False)
            logger.debug("Tool %s failed", tool_name, exc_info=True)
            sanitized = self.sanitizer.sanitize(exc)
            self.audit.log(
                tool=tool_name,
                decision="error",
                reason=str(sanitized),
                category=type(exc).__name__,
                latency_ms=self._elapsed_ms(start),
            )
            raise sanitized from None
        self.health.record_outcome(True)
        self.audit.log(tool=tool_name, decision="allow", latency_ms=self._elapsed_ms(start))
        return result

    def wrap_tool(
        self,
        func: Callable[..., Awaitable[Any]] | None = None,
        *,
        tool_name: str | None = None,
        expected_types: ExpectedTypes | None = None,
    ):
        """Wrap a keyword-argument tool function so every call is guarded."""

        def decorator(inner: Callable[..., Awaitable[Any]]) -> GuardedTool:
            name = tool_name or inner.__name__.replace("_", "-")

            if not inspect.iscoroutinefunction(inner):
                raise TypeError("Wrapped tool must be async")

            async def call(params: dict[str, Any]) -> Any:
                return await inner(**params)

            @wraps(inner)
            async def wrapper(**kwargs: Any) -> Any:
                return await self.dispatch(name, kwargs, call, expected_types=expected_types)

            return wrapper

        if func is not None:
            return decorator(func)
        return decorator

    async def check_health(self, probe: Probe, tool_count: int) -> HealthSnapshot:
        return await self.health.get_health_snapshot(probe, tool_count)

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 2)
