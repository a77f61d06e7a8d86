"""Shared data structures for issueguard."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass(slots=True)
class RateWindow:
    """Fixed-window request counters, reset all at once."""

    window_start: float
    per_operation_counts: dict[str, int] = field(default_factory=dict)
    global_count: int = 0

    def reset(self, now: float) -> None:
        self.per_operation_counts.clear()
        self.global_count = 0
        self.window_start = now


@dataclass(frozen=True, slots=True)
class DangerPattern:
    """A tagged matcher for dangerous input."""

    rule_id: str
    category: str
    regex: re.Pattern[str]

    def search(self, text: str) -> bool:
        return self.regex.search(text) is not None


@dataclass(frozen=True, slots=True)
class MemoryMetrics:
    used: int
    total: int
    free: int
    percentage: float


@dataclass(frozen=True, slots=True)
class CpuMetrics:
    usage: float
    load_average: tuple[float, float, float]


@dataclass(frozen=True, slots=True)
class RemoteStatus:
    """Outcome of a liveness probe against the issue tracker."""

    status: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status}
        if self.latency_ms is not None:
            data["latency_ms"] = self.latency_ms
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class RequestMetrics:
    """Running request outcome counters."""

    total: int = 0
    success: int = 0
    errors: int = 0
    rate_limited: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "success": self.success,
            "errors": self.errors,
            "rate_limited": self.rate_limited,
        }


@dataclass(frozen=True, slots=True)
class HealthSnapshot:
    """Composite health status, produced fresh for every probe."""

    status: str
    timestamp: str
    uptime_seconds: int
    version: str
    memory: MemoryMetrics
    cpu: CpuMetrics
    remote: RemoteStatus
    tool_count: int
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "timestamp": self.timestamp,
            "uptime_seconds": self.uptime_seconds,
            "version": self.version,
            "memory": asdict(self.memory),
            "cpu": {"usage": self.cpu.usage, "load_average": list(self.cpu.load_average)},
            "remote": self.remote.to_dict(),
            "tool_count": self.tool_count,
        }
        if self.errors:
            data["errors"] = list(self.errors)
        return data


@dataclass(frozen=True, slots=True)
class SystemMetrics:
    memory: MemoryMetrics
    cpu: CpuMetrics
    uptime_seconds: int
    timestamp: str
    requests: RequestMetrics

    def to_dict(self) -> dict[str, Any]:
        return {
            "memory": asdict(self.memory),
            "cpu": {"usage": self.cpu.usage, "load_average": list(self.cpu.load_average)},
            "uptime_seconds": self.uptime_seconds,
            "timestamp": self.timestamp,
            "requests": self.requests.to_dict(),
        }
