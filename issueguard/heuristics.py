"""Heuristic input screening for tool parameters."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .exceptions import InvalidInput, InvalidParameterType, PayloadTooLarge, TooManyParameters
from .types import DangerPattern

logger = logging.getLogger(__name__)

MAX_PAYLOAD_BYTES = 500_000
MAX_PARAMETERS = 100

SQL_INJECTION = "sql_injection"
MARKUP = "markup"
COMMAND = "command"
PATH_TRAVERSAL = "path_traversal"


def _pattern(rule_id: str, category: str, expr: str, flags: int = re.IGNORECASE) -> DangerPattern:
    return DangerPattern(rule_id=rule_id, category=category, regex=re.compile(expr, flags))


# Checked in order. Over-rejection is acceptable here.
DEFAULT_PATTERNS: tuple[DangerPattern, ...] = (
    _pattern("sql_punctuation", SQL_INJECTION, r"('|\\|\"|\[|\]|%|--|#|/\*|\*/)"),
    _pattern(
        "sql_keyword",
        SQL_INJECTION,
        r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|UNION|SCRIPT)\b",
    ),
    _pattern("script_tag", MARKUP, r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    _pattern("iframe_tag", MARKUP, r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    _pattern("javascript_scheme", MARKUP, r"javascript:"),
    _pattern("event_handler", MARKUP, r"on\w+\s*="),
    _pattern("shell_metachar", COMMAND, r"[;&|`$()]", 0),
    _pattern("shell_command", COMMAND, r"\b(rm|del|format|eval|exec|system)\b"),
    _pattern("dot_dot_slash", PATH_TRAVERSAL, r"\.\.[/\\]"),
    _pattern("sensitive_path", PATH_TRAVERSAL, r"/etc/passwd|/etc/shadow|/proc/|C:\\Windows"),
)

JSON_TYPES = ("string", "integer", "number", "boolean", "array", "object", "null")


def json_type(value: Any) -> str:
    """Name the JSON type of a decoded value."""

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


class InputGuard:
    """Rejects oversized payloads and strings matching dangerous patterns."""

    def __init__(
        self,
        patterns: Iterable[DangerPattern] | None = None,
        *,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
        max_parameters: int = MAX_PARAMETERS,
    ) -> None:
        self.patterns = tuple(DEFAULT_PATTERNS if patterns is None else patterns)
        self.max_payload_bytes = max_payload_bytes
        self.max_parameters = max_parameters

    def inspect(self, text: str) -> list[DangerPattern]:
        return [pattern for pattern in self.patterns if pattern.search(text)]

    def validate(self, value: Any) -> None:
        if value is None:
            return
        serialized = json.dumps(value, ensure_ascii=False, default=str).encode("utf-8")
        if len(serialized) > self.max_payload_bytes:
            raise PayloadTooLarge()
        if isinstance(value, (Mapping, list, tuple)) and len(value) > self.max_parameters:
            raise TooManyParameters()
        self._walk(value)

    def _walk(self, value: Any) -> None:
        if isinstance(value, str):
            for pattern in self.patterns:
                if pattern.search(value):
                    logger.warning(
                        "Dangerous input pattern detected (rule=%s, category=%s)",
                        pattern.rule_id,
                        pattern.category,
                    )
                    raise InvalidInput()
        elif isinstance(value, Mapping):
            for key, item in value.items():
                self._walk(key)
                self._walk(item)
        elif isinstance(value, (list, tuple)):
            for item in value:
                self._walk(item)

    def validate_types(self, params: Mapping[str, Any], expected_types: Mapping[str, str | Iterable[str]]) -> None:
        """Check declared parameters against JSON type names."""

        for key, expected in expected_types.items():
            if key not in params:
                continue
            allowed = (expected,) if isinstance(expected, str) else tuple(expected)
            actual = json_type(params[key])
            if actual in allowed or (actual == "integer" and "number" in allowed):
                continue
            if len(allowed) == 1:
                message = f"Invalid parameter type for {key}: expected {allowed[0]}, got {actual}"
            else:
                message = f"Invalid parameter type for {key}: expected one of [{', '.join(allowed)}], got {actual}"
            raise InvalidParameterType(
                message=message,
                field=key,
                details={"field": key, "expected": list(allowed), "actual": actual},
            )
