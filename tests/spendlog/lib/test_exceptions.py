"""
Tests for the custom exception hierarchy.

Verifies:
- All exceptions are subclasses of SpendlogException
- Intake rejections resolve their user hint from the reason code
- Only storage failures are escalated
"""

from __future__ import annotations

import pytest

from spendlog.lib import errors
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

EXCEPTION_CLASSES = [
    ConfigurationError,
    SecurityError,
    ExternalServiceError,
    DatabaseError,
    IntakeRejection,
]

REJECTION_CLASSES = [
    SanitizationError,
    SignalRejection,
    ConfidenceRejection,
    ExtractionError,
    ValidationError,
]


class TestExceptionHierarchy:
    """Test the exception class hierarchy."""

    @pytest.mark.parametrize("exc_class", EXCEPTION_CLASSES)
    def test_all_are_subclass_of_spendlog_exception(self, exc_class: type[SpendlogException]) -> None:
        assert issubclass(exc_class, SpendlogException)

    @pytest.mark.parametrize("exc_class", [*REJECTION_CLASSES, StorageError])
    def test_rejections_share_a_base(self, exc_class: type[IntakeRejection]) -> None:
        assert issubclass(exc_class, IntakeRejection)

    def test_catch_all(self) -> None:
        with pytest.raises(SpendlogException):
            raise DatabaseError("connection lost")


class TestIntakeRejection:
    """Reason codes, hints and escalation."""

    def test_hint_comes_from_registry(self) -> None:
        exc = SignalRejection(errors.NO_AMOUNT_DETECTED)
        assert exc.code == errors.NO_AMOUNT_DETECTED
        assert exc.user_message == errors.get_user_message(errors.NO_AMOUNT_DETECTED)
        assert exc.status_code == 200

    def test_silent_code_has_no_hint(self) -> None:
        assert SanitizationError(errors.TEXT_HTML_TAG).user_message is None

    def test_explicit_hint_wins(self) -> None:
        assert ExtractionError(errors.EXTRACTION_FAILED, user_message="custom").user_message == "custom"

    def test_message_prefers_detail(self) -> None:
        assert str(ValidationError(errors.VALIDATION_FAILED, detail="amount out of range")) == "amount out of range"
        assert str(ValidationError(errors.VALIDATION_FAILED)) == errors.VALIDATION_FAILED

    @pytest.mark.parametrize("exc_class", REJECTION_CLASSES)
    def test_routine_rejections_not_escalated(self, exc_class: type[IntakeRejection]) -> None:
        assert exc_class("code").escalate is False

    def test_storage_error_escalated(self) -> None:
        assert StorageError(errors.STORAGE_FAILED).escalate is True


class TestSecurityError:
    def test_defaults(self) -> None:
        exc = SecurityError(errors.REQUEST_TOO_OLD)
        assert exc.status_code == 400
        assert exc.notify_user is False
        assert str(exc) == errors.REQUEST_TOO_OLD

    def test_unauthorized_sender(self) -> None:
        exc = SecurityError(errors.UNAUTHORIZED, status_code=200, notify_user=True)
        assert (exc.status_code, exc.notify_user) == (200, True)
