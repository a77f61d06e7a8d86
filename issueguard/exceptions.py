"""Custom exceptions for issueguard."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class IssueGuardException(Exception):
    """Base class for issueguard exceptions."""

    message: str
    http_status: int = 400
    details: dict[str, object] | None = None

    def __str__(self) -> str:  # pragma: no cover - dataclass str wrapper
        return self.message


@dataclass(eq=False)
class ValidationError(IssueGuardException):
    """Field-scoped validation failure, always safe to show to callers."""

    field: str | None = None


@dataclass(eq=False)
class InvalidInput(ValidationError):
    """Raised when a string matches a dangerous pattern."""

    message: str = "Invalid input detected"


@dataclass(eq=False)
class PayloadTooLarge(ValidationError):
    message: str = "Request payload too large"
    http_status: int = 413


@dataclass(eq=False)
class TooManyParameters(ValidationError):
    message: str = "Too many parameters"


@dataclass(eq=False)
class InvalidParameterType(ValidationError):
    """Raised when a parameter has the wrong runtime type."""


@dataclass(eq=False)
class RateLimitExceeded(IssueGuardException):
    """Raised when the admission controller rejects a call."""

    http_status: int = 429
    scope: str = "operation"


@dataclass(eq=False)
class ConfigValidationError(IssueGuardException):
    """Raised when configuration cannot be validated."""

    http_status: int = 422
    issues: list[Any] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass(eq=False)
class MetricsUnavailable(IssueGuardException):
    """Raised when system metrics cannot be sampled."""

    http_status: int = 503


@dataclass(eq=False)
class SanitizedError(IssueGuardException):
    """An error whose message has already been redacted."""

    http_status: int = 500
    category: str = "Error"
