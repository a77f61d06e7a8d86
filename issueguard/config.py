"""Configuration loading and validation for issueguard."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping, Optional
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

LogLevel = Literal["debug", "info", "warn", "error"]

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

ENV_BASE_URL = "REDMINE_BASE_URL"
ENV_API_KEY = "REDMINE_API_KEY"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_TIMEOUT = "TIMEOUT"
ENV_APP_ENV = "APP_ENV"

# environment variable -> config field, used to reuse field suggestions
_ENV_FIELDS = {
    ENV_BASE_URL: "baseUrl",
    ENV_API_KEY: "credential",
    ENV_LOG_LEVEL: "logLevel",
    ENV_TIMEOUT: "timeout",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class RateLimitSettings(_CamelModel):
    max_requests: int = Field(default=1000, ge=1, le=10000, description="Requests allowed per window across all tools")
    window_ms: int = Field(default=60000, ge=1000, le=3600000, description="Window length in milliseconds")
    tool_limits: dict[str, int] = Field(default_factory=dict, description="Per-tool requests allowed per window")

    @field_validator("tool_limits")
    @classmethod
    def validate_tool_limits(cls, value: dict[str, int]) -> dict[str, int]:
        for name, limit in value.items():
            if not 1 <= limit <= 10000:
                raise ValueError(f"Limit for tool {name} must be between 1 and 10000")
        return value


class GuardConfig(_CamelModel):
    base_url: str = Field(
        description="Base URL of the issue tracker (must use HTTPS)",
        json_schema_extra={"format": "uri", "pattern": "^https://"},
    )
    credential: str = Field(min_length=8, max_length=128, description="API key used to authenticate against the tracker")
    log_level: LogLevel = Field(default="info", description="Logging level for the application")
    timeout: Optional[int] = Field(default=None, ge=1000, le=300000, description="Request timeout in milliseconds (1s - 5m)")
    rate_limit: Optional[RateLimitSettings] = None

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        parts = urlsplit(value.strip())
        if not parts.scheme or not parts.netloc:
            raise ValueError("Base URL must be a valid URL")
        if parts.scheme != "https":
            raise ValueError("Base URL must use HTTPS for security")
        return value.strip()

    @property
    def rate_limit_settings(self) -> RateLimitSettings:
        return self.rate_limit or RateLimitSettings()

    @property
    def logging_level(self) -> int:
        return LOG_LEVELS[self.log_level]


class EnvironmentSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    REDMINE_BASE_URL: str = Field(min_length=1)
    REDMINE_API_KEY: str = Field(min_length=8)
    LOG_LEVEL: LogLevel = "info"
    TIMEOUT: Optional[int] = Field(default=None, ge=1000, le=300000)
    APP_ENV: Literal["development", "production", "test"] = "development"


@dataclass(frozen=True, slots=True)
class ConfigIssue:
    path: str
    message: str
    code: str = "value_error"


@dataclass(frozen=True, slots=True)
class ConfigResult:
    success: bool
    config: Optional[GuardConfig] = None
    issues: list[ConfigIssue] = field(default_factory=list)


def _issues_from(exc: ValidationError) -> list[ConfigIssue]:
    issues = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"])
        message = error["msg"]
        if error["type"] == "value_error" and "error" in error.get("ctx", {}):
            message = str(error["ctx"]["error"])
        issues.append(ConfigIssue(path=path, message=message, code=error["type"]))
    return issues


def validate_config(candidate: Any) -> ConfigResult:
    """Validate a configuration mapping, collecting every issue."""

    try:
        config = GuardConfig.model_validate(candidate)
    except ValidationError as exc:
        return ConfigResult(success=False, issues=_issues_from(exc))
    return ConfigResult(success=True, config=config)


def validate_environment(environ: Mapping[str, str] | None = None) -> ConfigResult:
    """Validate configuration sourced from environment variables."""

    source = os.environ if environ is None else environ
    names = (ENV_BASE_URL, ENV_API_KEY, ENV_LOG_LEVEL, ENV_TIMEOUT, ENV_APP_ENV)
    raw = {name: source[name] for name in names if source.get(name)}
    try:
        env = EnvironmentSettings.model_validate(raw)
    except ValidationError as exc:
        return ConfigResult(success=False, issues=_issues_from(exc))
    logger.debug("Loading configuration for %s environment", env.APP_ENV)
    candidate: dict[str, Any] = {
        "baseUrl": env.REDMINE_BASE_URL,
        "credential": env.REDMINE_API_KEY,
        "logLevel": env.LOG_LEVEL,
    }
    if env.TIMEOUT is not None:
        candidate["timeout"] = env.TIMEOUT
    return validate_config(candidate)


def format_errors(issues: list[ConfigIssue]) -> str:
    lines = [f"{issue.path}: {issue.message}" for issue in issues]
    return "Configuration validation failed:\n" + "\n".join(lines)


def get_suggestions(issues: list[ConfigIssue]) -> list[str]:
    """Return remediation hints for common configuration mistakes."""

    suggestions: list[str] = []
    for issue in issues:
        path = _ENV_FIELDS.get(issue.path, issue.path)
        if path == "baseUrl":
            if "HTTPS" in issue.message:
                suggestions.append('Ensure your base URL starts with "https://" for security')
            else:
                suggestions.append("Check that your base URL is properly formatted (e.g., https://tracker.example.com)")
        elif path == "credential":
            if issue.code == "missing":
                suggestions.append(f"Provide an API key via the credential field or {ENV_API_KEY}")
            else:
                suggestions.append(
                    "Credential must be between 8 and 128 characters long. Check your tracker account settings."
                )
        elif path == "logLevel":
            suggestions.append("Log level must be one of: debug, info, warn, error")
        elif path == "timeout":
            suggestions.append("Timeout should be between 1000ms (1 second) and 300000ms (5 minutes)")
        elif path.startswith("rateLimit"):
            suggestions.append(
                "Rate limit maxRequests must be 1-10000 and windowMs 1000-3600000 (1 second to 1 hour)"
            )

    if not suggestions:
        suggestions.append("Check that all required fields are provided and properly formatted")
        suggestions.append("Refer to the documentation for configuration examples")
    return list(dict.fromkeys(suggestions))


def get_json_schema() -> dict[str, Any]:
    """JSON schema of the configuration document, for external tooling."""

    schema = GuardConfig.model_json_schema(by_alias=True)
    schema["title"] = "issueguard configuration"
    return schema


def generate_template() -> str:
    template = {
        "baseUrl": "https://your-tracker.example.com",
        "credential": "your-api-key-here",
        "logLevel": "info",
        "timeout": 30000,
        "rateLimit": {
            "maxRequests": 1000,
            "windowMs": 60000,
            "toolLimits": {"create-issue": 30, "update-issue": 30},
        },
    }
    return json.dumps(template, indent=2)


def _raise_for(result: ConfigResult, prefix: str = "") -> GuardConfig:
    if result.success and result.config is not None:
        return result.config
    suggestions = get_suggestions(result.issues)
    hints = "\n".join(f"- {suggestion}" for suggestion in suggestions)
    message = f"{prefix}{format_errors(result.issues)}\n\nSuggestions:\n{hints}"
    raise ConfigValidationError(message=message, issues=list(result.issues), suggestions=suggestions)


def validate_or_raise(candidate: Any) -> GuardConfig:
    return _raise_for(validate_config(candidate))


def validate_environment_or_raise(environ: Mapping[str, str] | None = None) -> GuardConfig:
    return _raise_for(validate_environment(environ), prefix="Environment validation failed:\n")


def load_config(path: str | Path) -> GuardConfig:
    """Load a configuration from a YAML (or JSON) file."""

    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigValidationError(message=f"Failed to read config: {exc}") from exc
    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise ConfigValidationError(message=f"Failed to parse config YAML: {exc}") from exc
    return validate_or_raise(data)
