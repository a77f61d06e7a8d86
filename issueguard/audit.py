"""Structured audit logging."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional


class AuditLogger:
    """Writes one JSON line per tool decision."""

    def __init__(self, level: int = logging.INFO, *, version: str = "") -> None:
        self.logger = logging.getLogger("issueguard.audit")
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)
        self.logger.setLevel(level)
        self.version = version

    def log(
        self,
        *,
        tool: str,
        decision: str,
        reason: Optional[str] = None,
        category: Optional[str] = None,
        latency_ms: float | None = None,
    ) -> None:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "tool": tool,
            "decision": decision,
            "reason": reason,
            "category": category,
            "latency_ms": latency_ms,
            "version": self.version,
        }
        if decision == "allow":
            self.logger.info(json.dumps(payload))
        else:
            self.logger.warning(json.dumps(payload))
