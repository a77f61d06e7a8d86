"""System metrics collection and health monitoring."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import psutil

from . import __version__
from .exceptions import MetricsUnavailable
from .types import CpuMetrics, HealthSnapshot, MemoryMetrics, RemoteStatus, RequestMetrics, SystemMetrics

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[Any]]

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

MEMORY_THRESHOLD = 90.0
HIGH_MEMORY_MESSAGE = "High memory usage detected"
REMOTE_FAILED_MESSAGE = "Remote system probe failed"

ZERO_MEMORY = MemoryMetrics(used=0, total=0, free=0, percentage=0.0)
ZERO_CPU = CpuMetrics(usage=0.0, load_average=(0.0, 0.0, 0.0))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthMonitor:
    """Aggregates resource samples, a remote probe and request counters."""

    def __init__(
        self,
        *,
        version: str = __version__,
        memory_threshold: float = MEMORY_THRESHOLD,
        time_func: Callable[[], float] | None = None,
    ) -> None:
        self.version = version
        self.memory_threshold = memory_threshold
        self._time = time_func or time.monotonic
        self._start = self._time()
        self._requests = RequestMetrics()
        self._lock = threading.Lock()
        self._process = psutil.Process(os.getpid())

    def uptime_seconds(self) -> int:
        return int(self._time() - self._start)

    def sample_memory(self) -> MemoryMetrics:
        try:
            used = self._process.memory_info().rss
            system = psutil.virtual_memory()
        except (psutil.Error, OSError) as exc:
            raise MetricsUnavailable(message=f"Memory check failed: {exc}") from exc
        if not system.total:
            raise MetricsUnavailable(message="Memory check failed: total memory unknown")
        return MemoryMetrics(
            used=used,
            total=system.total,
            free=system.available,
            percentage=round(used / system.total * 100, 2),
        )

    def sample_cpu(self) -> CpuMetrics:
        """Best-effort CPU sample; zeroed when sampling fails."""

        try:
            usage = psutil.cpu_percent(interval=None)
            load = psutil.getloadavg()
        except Exception:
            logger.debug("CPU sampling unavailable", exc_info=True)
            return ZERO_CPU
        return CpuMetrics(usage=float(usage), load_average=(load[0], load[1], load[2]))

    async def probe_remote(self, probe: Probe) -> RemoteStatus:
        start = time.perf_counter()
        try:
            await probe()
        except Exception as exc:
            logger.warning("Remote health probe failed: %s", exc)
            return RemoteStatus(status="error", error=str(exc) or type(exc).__name__)
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        return RemoteStatus(status="connected", latency_ms=latency_ms)

    async def get_health_snapshot(self, probe: Probe, tool_count: int) -> HealthSnapshot:
        """Compose a snapshot. Never raises; failures degrade the status."""

        errors: list[str] = []
        try:
            memory = self.sample_memory()
            cpu = self.sample_cpu()
            remote = await self.probe_remote(probe)
            status = HEALTHY
            if remote.status == "error":
                status = DEGRADED
                errors.append(REMOTE_FAILED_MESSAGE)
            if memory.percentage > self.memory_threshold:
                status = DEGRADED
                errors.append(HIGH_MEMORY_MESSAGE)
            return HealthSnapshot(
                status=status,
                timestamp=_now_iso(),
                uptime_seconds=self.uptime_seconds(),
                version=self.version,
                memory=memory,
                cpu=cpu,
                remote=remote,
                tool_count=tool_count,
                errors=tuple(errors),
            )
        except Exception as exc:
            logger.warning("Health check failed: %s", exc)
            errors.append(str(exc) or "Unknown health check error")
            return HealthSnapshot(
                status=DEGRADED,
                timestamp=_now_iso(),
                uptime_seconds=self.uptime_seconds(),
                version=self.version,
                memory=ZERO_MEMORY,
                cpu=ZERO_CPU,
                remote=RemoteStatus(status="unknown"),
                tool_count=tool_count,
                errors=tuple(errors),
            )

    def record_outcome(self, success: bool, rate_limited: bool = False) -> None:
        with self._lock:
            self._requests.total += 1
            if success:
                self._requests.success += 1
            else:
                self._requests.errors += 1
            if rate_limited:
                self._requests.rate_limited += 1

    def get_request_metrics(self) -> RequestMetrics:
        with self._lock:
            return replace(self._requests)

    def get_system_metrics(self) -> SystemMetrics:
        return SystemMetrics(
            memory=self.sample_memory(),
            cpu=self.sample_cpu(),
            uptime_seconds=self.uptime_seconds(),
            timestamp=_now_iso(),
            requests=self.get_request_metrics(),
        )
