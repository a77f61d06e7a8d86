"""Redaction of sensitive details from error messages."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from .exceptions import ConfigValidationError, RateLimitExceeded, SanitizedError, ValidationError

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
PATH_REDACTED = "[PATH_REDACTED]"
CONNECTION_REDACTED = "[CONNECTION_REDACTED]"
INTERNAL_ERROR = "Internal server error"
DATABASE_ERROR = "Database connection error"

SAFE_TYPES = (ValidationError, RateLimitExceeded, ConfigValidationError, SanitizedError)
SAFE_MARKERS = (
    "rate limit exceeded",
    "invalid input detected",
    "request payload too large",
    "too many parameters",
    "invalid parameter type",
)
PLACEHOLDER_SECRETS = ("test-key",)
FILESYSTEM_MARKERS = ("enoent", "no such file", "eacces")
FILESYSTEM_ERRORS = (FileNotFoundError, PermissionError, IsADirectoryError, NotADirectoryError)
DATABASE_MARKERS = ("connection failed", "mysql:", "postgresql:", "postgres:", "mongodb:")

HEX_TOKEN = re.compile(r"\b[a-f0-9]{32,64}\b", re.IGNORECASE)
POSIX_PATH = re.compile(r"(?<![\w/.])/(?!/)[^\s'\",]+")
WINDOWS_PATH = re.compile(r"\b[A-Za-z]:\\[^\s'\",]+")
CONNECTION_STRING = re.compile(r"\b[A-Za-z][\w+.-]*://\S+")


class ErrorSanitizer:
    """Removes secrets, paths and connection strings from error messages."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        self.secrets = tuple(secret for secret in (*PLACEHOLDER_SECRETS, *secrets) if secret)

    def is_safe(self, error: BaseException) -> bool:
        if isinstance(error, SAFE_TYPES):
            return True
        lowered = str(error).lower()
        return any(marker in lowered for marker in SAFE_MARKERS)

    def redact(self, message: str) -> str:
        message = HEX_TOKEN.sub(REDACTED, message)
        for secret in self.secrets:
            message = message.replace(secret, REDACTED)
        message = POSIX_PATH.sub(PATH_REDACTED, message)
        message = WINDOWS_PATH.sub(PATH_REDACTED, message)
        return CONNECTION_STRING.sub(CONNECTION_REDACTED, message)

    def sanitize(self, error: BaseException) -> BaseException:
        """Return an error of the same category with a redacted message."""

        try:
            if self.is_safe(error):
                return error
            original = str(error)
            lowered = original.lower()
            message = self.redact(original)
            if isinstance(error, FILESYSTEM_ERRORS) or any(marker in lowered for marker in FILESYSTEM_MARKERS):
                message = INTERNAL_ERROR
            if any(marker in lowered for marker in DATABASE_MARKERS):
                message = DATABASE_ERROR
            return self._rebuild(error, message)
        except Exception:
            logger.exception("Error sanitization failed")
            return SanitizedError(message=INTERNAL_ERROR, category=type(error).__name__)

    @staticmethod
    def _rebuild(error: BaseException, message: str) -> BaseException:
        category = type(error).__name__
        try:
            clone = type(error)(message)
        except Exception:
            return SanitizedError(message=message, category=category)
        if str(clone) != message:
            return SanitizedError(message=message, category=category)
        return clone
