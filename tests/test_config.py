import json
import pathlib

import jsonschema
import pytest

from issueguard.config import (
    ConfigIssue,
    GuardConfig,
    format_errors,
    generate_template,
    get_json_schema,
    get_suggestions,
    load_config,
    validate_config,
    validate_environment,
    validate_environment_or_raise,
    validate_or_raise,
)
from issueguard.exceptions import ConfigValidationError

EXAMPLE_CONFIG = pathlib.Path(__file__).resolve().parents[1] / "examples" / "config.yaml"


def test_minimal_config_gets_defaults() -> None:
    result = validate_config({"baseUrl": "https://x.example/", "credential": "12345678"})
    assert result.success
    assert result.config is not None
    assert result.config.log_level == "info"
    assert result.config.timeout is None
    assert result.config.rate_limit_settings.max_requests == 1000
    assert result.config.rate_limit_settings.window_ms == 60000


def test_invalid_base_url() -> None:
    result = validate_config({"baseUrl": "not-a-url", "credential": "12345678"})
    assert not result.success
    assert any("baseUrl" in issue.path for issue in result.issues)


def test_http_base_url_rejected() -> None:
    result = validate_config({"baseUrl": "http://x.example/", "credential": "12345678"})
    assert not result.success
    assert result.issues[0].message == "Base URL must use HTTPS for security"
    assert get_suggestions(result.issues) == ['Ensure your base URL starts with "https://" for security']


def test_short_credential() -> None:
    result = validate_config({"baseUrl": "https://x.example/", "credential": "short"})
    assert not result.success
    assert any("credential" in issue.path for issue in result.issues)


def test_all_issues_reported() -> None:
    result = validate_config(
        {
            "baseUrl": "ftp://x.example/",
            "credential": "short",
            "logLevel": "verbose",
            "timeout": 10,
            "rateLimit": {"maxRequests": 0},
            "unexpected": True,
        }
    )
    paths = {issue.path for issue in result.issues}
    assert {"baseUrl", "credential", "logLevel", "timeout", "rateLimit.maxRequests", "unexpected"} <= paths


def test_format_errors() -> None:
    issues = [ConfigIssue(path="baseUrl", message="bad"), ConfigIssue(path="timeout", message="too small")]
    assert format_errors(issues) == "Configuration validation failed:\nbaseUrl: bad\ntimeout: too small"


def test_generic_suggestions() -> None:
    suggestions = get_suggestions([ConfigIssue(path="unexpected", message="Extra inputs are not permitted")])
    assert suggestions == [
        "Check that all required fields are provided and properly formatted",
        "Refer to the documentation for configuration examples",
    ]


def test_validate_or_raise() -> None:
    with pytest.raises(ConfigValidationError) as excinfo:
        validate_or_raise({"baseUrl": "https://x.example/", "credential": "short"})
    error = excinfo.value
    assert "credential:" in error.message
    assert "Suggestions:" in error.message
    assert error.suggestions
    assert error.issues[0].path == "credential"


def test_template_is_valid_against_schema() -> None:
    template = json.loads(generate_template())
    jsonschema.validate(template, get_json_schema())
    assert validate_config(template).success


def test_schema_rejects_http_and_extra_keys() -> None:
    schema = get_json_schema()
    assert schema["required"] == ["baseUrl", "credential"]
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate({"baseUrl": "http://x", "credential": "12345678"}, schema)
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate({"baseUrl": "https://x", "credential": "12345678", "extra": 1}, schema)


def test_validate_environment() -> None:
    env = {
        "REDMINE_BASE_URL": "https://tracker.example.com",
        "REDMINE_API_KEY": "abcdefgh",
        "TIMEOUT": "5000",
        "LOG_LEVEL": "",
        "APP_ENV": "test",
    }
    result = validate_environment(env)
    assert result.success
    assert result.config == GuardConfig(base_url="https://tracker.example.com", credential="abcdefgh", timeout=5000)


def test_validate_environment_issues() -> None:
    result = validate_environment({"REDMINE_API_KEY": "abc", "TIMEOUT": "soon"})
    paths = {issue.path for issue in result.issues}
    assert paths == {"REDMINE_BASE_URL", "REDMINE_API_KEY", "TIMEOUT"}
    suggestions = get_suggestions(result.issues)
    assert any("Timeout" in suggestion for suggestion in suggestions)

    with pytest.raises(ConfigValidationError) as excinfo:
        validate_environment_or_raise({})
    assert excinfo.value.message.startswith("Environment validation failed:")


def test_load_config_from_yaml() -> None:
    config = load_config(EXAMPLE_CONFIG)
    assert config.base_url == "https://tracker.example.com"
    assert config.rate_limit_settings.tool_limits["create-issue"] == 3


def test_load_config_reports_bad_file(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("baseUrl: http://tracker.example.com\ncredential: abcdefgh\n")
    with pytest.raises(ConfigValidationError):
        load_config(path)
    with pytest.raises(ConfigValidationError):
        load_config(tmp_path / "missing.yaml")
