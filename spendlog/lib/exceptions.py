"""
Custom exception hierarchy for spendlog.

All exceptions inherit from SpendlogException, enabling a catch-all for
spendlog-specific errors while keeping the ability to catch specific types.

IntakeRejection and its subclasses are not faults: they are the expected,
routine outcomes of the intake pipeline (text that is not an expense).
The pipeline recovers every one of them into an IntakeOutcome. Only
StorageError is flagged for escalation, because a failed insert after a
successful validation means the user's expense was not recorded.
"""

from __future__ import annotations

from spendlog.lib.errors import get_user_message


class SpendlogException(Exception):
    """Base exception for all spendlog errors."""


class ConfigurationError(SpendlogException):
    """Missing environment variables, invalid config values, or startup failures."""


class SecurityError(SpendlogException):
    """Request verification failures (stale request, bad gateway token, unknown sender)."""

    def __init__(self, code: str, status_code: int = 400, notify_user: bool = False) -> None:
        self.code = code
        self.status_code = status_code
        self.notify_user = notify_user
        super().__init__(code)


class ExternalServiceError(SpendlogException):
    """External API call failures (inference services, transport)."""


class DatabaseError(SpendlogException):
    """Expense store connection or query failures."""


# =============================================================================
# Intake rejections
# =============================================================================


class IntakeRejection(SpendlogException):
    """A message was turned away by one of the intake stages.

    Attributes:
        code: Reason code (see spendlog.lib.errors)
        user_message: Hint for the user, None for silent rejections
        status_code: HTTP-style status for the webhook caller
    """

    escalate: bool = False

    def __init__(
        self,
        code: str,
        detail: str | None = None,
        user_message: str | None = None,
        status_code: int = 200,
    ) -> None:
        self.code = code
        self.detail = detail
        self.user_message = user_message if user_message is not None else get_user_message(code)
        self.status_code = status_code
        super().__init__(detail or code)


class SanitizationError(IntakeRejection):
    """Malformed or hostile input text."""


class SignalRejection(IntakeRejection):
    """No expense-like evidence in the text."""


class ConfidenceRejection(IntakeRejection):
    """Low or absent sentiment score, or the scoring service failed."""


class ExtractionError(IntakeRejection):
    """Extraction service failure or unparseable output."""


class ValidationError(IntakeRejection):
    """Extracted fields failed schema or range checks."""


class StorageError(IntakeRejection):
    """Persistence failed after a successful validation."""

    escalate = True
