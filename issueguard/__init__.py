"""issueguard package providing request governance for issue tracker tools."""

__version__ = "1.0.0"

from .config import GuardConfig, load_config, validate_config, validate_environment
from .exceptions import ConfigValidationError, InvalidInput, RateLimitExceeded, ValidationError
from .guard import Guard

__all__ = [
    "Guard",
    "GuardConfig",
    "load_config",
    "validate_config",
    "validate_environment",
    "ConfigValidationError",
    "InvalidInput",
    "RateLimitExceeded",
    "ValidationError",
]
