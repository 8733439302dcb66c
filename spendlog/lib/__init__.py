"""
Lib package for spendlog.

Contains shared utilities:
- logging.py: structlog configuration
- exceptions.py: Exception hierarchy, including intake rejections
- errors.py: Reason codes and user-facing hints
- security.py: Timing-safe comparison, request freshness, Markdown escaping
"""

from spendlog.lib.errors import build_error_response, get_user_message
from spendlog.lib.exceptions import (
    ConfidenceRejection,
    ConfigurationError,
    DatabaseError,
    ExternalServiceError,
    ExtractionError,
    IntakeRejection,
    SanitizationError,
    SecurityError,
    SignalRejection,
    SpendlogException,
    StorageError,
    ValidationError,
)
from spendlog.lib.security import (
    constant_time_equals,
    escape_markdown_v2,
    hash_uid,
    is_request_fresh,
)

__all__ = [
    # Errors
    "build_error_response",
    "get_user_message",
    # Exceptions
    "SpendlogException",
    "ConfigurationError",
    "SecurityError",
    "ExternalServiceError",
    "DatabaseError",
    "IntakeRejection",
    "SanitizationError",
    "SignalRejection",
    "ConfidenceRejection",
    "ExtractionError",
    "ValidationError",
    "StorageError",
    # Security
    "constant_time_equals",
    "escape_markdown_v2",
    "hash_uid",
    "is_request_fresh",
]
