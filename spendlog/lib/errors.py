"""
Centralized reason codes and user-facing hints for spendlog.

Every rejection the bot can produce is identified by a reason code constant.
Codes are what callers and logs see; hints are what the user sees in chat.
A code without a hint is a silent rejection: nothing is sent back, so that
hostile input does not learn which rule it tripped.

The builder returns structured dicts compatible with the webhook response
body: ``{"ok": false, "reason": "<code>"}``.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Reason Code Constants
# =============================================================================

# Text sanitizer
TEXT_EMPTY = "text_empty"
TEXT_TOO_SHORT = "text_too_short"
TEXT_TOO_LONG = "text_too_long"
TEXT_HTML_TAG = "text_html_tag"
TEXT_DISALLOWED_CHARACTERS = "text_disallowed_characters"
TEXT_NEEDS_LETTER_AND_DIGIT = "text_needs_letter_and_digit"
TEXT_TOO_MANY_WORDS = "text_too_many_words"

# Confidence gate
NO_EXPENSE_DETECTED = "no_expense_detected"
NO_AMOUNT_DETECTED = "no_amount_detected"
SENTIMENT_UNAVAILABLE = "sentiment_unavailable"
LOW_SENTIMENT = "low_sentiment"

# Extraction, validation, storage
EXTRACTION_FAILED = "extraction_failed"
VALIDATION_FAILED = "validation_failed"
STORAGE_FAILED = "storage_failed"

# Webhook gate
REQUEST_MISSING_SENT_TIME = "request_missing_sent_time"
REQUEST_TOO_OLD = "request_too_old"
REQUEST_MISSING_CLIENT_ID = "request_missing_client_id"
REQUEST_WRONG_SOURCE = "request_wrong_source"
REQUEST_NO_TEXT = "request_no_text"
UNKNOWN_SENDER = "unknown_sender"
UNAUTHORIZED = "unauthorized"

# Bot commands
INVALID_COMMAND = "invalid_command"
NO_LOGS_FOUND = "no_logs_found"
INVALID_BUDGET = "invalid_budget"

INTERNAL_ERROR = "internal_error"

EXAMPLE_PHRASING = "Try: `Lunch 150 at Dominos`"

# =============================================================================
# Hint Registry
#
# Codes missing from this dict are silent.
# =============================================================================

_USER_MESSAGES: dict[str, str] = {
    TEXT_EMPTY: f"⁉️ Send me an expense. {EXAMPLE_PHRASING}",
    TEXT_TOO_SHORT: f"⁉️ That's too short to be an expense. {EXAMPLE_PHRASING}",
    TEXT_TOO_LONG: f"⁉️ That's too long. Keep it to one expense. {EXAMPLE_PHRASING}",
    TEXT_NEEDS_LETTER_AND_DIGIT: f"⁉️ I need an amount and what it was for. {EXAMPLE_PHRASING}",
    TEXT_TOO_MANY_WORDS: f"⁉️ Too many words. Keep it short. {EXAMPLE_PHRASING}",
    NO_EXPENSE_DETECTED: f"⁉️ No expense detected. {EXAMPLE_PHRASING}",
    NO_AMOUNT_DETECTED: f"⁉️ No amount detected. {EXAMPLE_PHRASING}",
    SENTIMENT_UNAVAILABLE: f"⁉️ Sorry, can't figure out what that was. {EXAMPLE_PHRASING}",
    LOW_SENTIMENT: f"⁉️ Sorry, can't figure out what that was. {EXAMPLE_PHRASING}",
    EXTRACTION_FAILED: "⚠️ Sorry, I could not parse the expense. Please try again.",
    VALIDATION_FAILED: "⚠️ Sorry, I could not parse the expense. Please try again.",
    STORAGE_FAILED: "⚠️ Sorry, I could not save the expense. Please try again.",
    UNAUTHORIZED: "You are supposed to be here ⁉️",
    INVALID_COMMAND: "⁉️ I don't know that command.",
    NO_LOGS_FOUND: "Nothing to delete, no expenses logged yet.",
    INVALID_BUDGET: "Enter a number, like, 100, 1000",
}


# =============================================================================
# Builders
# =============================================================================


def get_user_message(code: str) -> str | None:
    """
    Get the user-facing hint for a reason code.

    Args:
        code: Reason code constant (e.g. NO_AMOUNT_DETECTED)

    Returns:
        The hint text, or None if the code is silent or unknown
    """
    return _USER_MESSAGES.get(code)


def build_error_response(code: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Build the structured rejection body returned to the webhook caller.

    Args:
        code: Reason code constant
        details: Optional additional fields

    Returns:
        {"ok": False, "reason": code, **details}
    """
    body: dict[str, Any] = {"ok": False, "reason": code}
    if details:
        body.update(details)
    return body


__all__ = [
    "TEXT_EMPTY",
    "TEXT_TOO_SHORT",
    "TEXT_TOO_LONG",
    "TEXT_HTML_TAG",
    "TEXT_DISALLOWED_CHARACTERS",
    "TEXT_NEEDS_LETTER_AND_DIGIT",
    "TEXT_TOO_MANY_WORDS",
    "NO_EXPENSE_DETECTED",
    "NO_AMOUNT_DETECTED",
    "SENTIMENT_UNAVAILABLE",
    "LOW_SENTIMENT",
    "EXTRACTION_FAILED",
    "VALIDATION_FAILED",
    "STORAGE_FAILED",
    "REQUEST_MISSING_SENT_TIME",
    "REQUEST_TOO_OLD",
    "REQUEST_MISSING_CLIENT_ID",
    "REQUEST_WRONG_SOURCE",
    "REQUEST_NO_TEXT",
    "UNKNOWN_SENDER",
    "UNAUTHORIZED",
    "INVALID_COMMAND",
    "NO_LOGS_FOUND",
    "INVALID_BUDGET",
    "INTERNAL_ERROR",
    "EXAMPLE_PHRASING",
    "get_user_message",
    "build_error_response",
]
