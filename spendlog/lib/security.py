"""
Security helpers for spendlog.

Components:
- hash_uid: log-safe user identification
- constant_time_equals: timing-safe comparison for tokens and sender ids
- is_request_fresh: staleness check for gateway requests
- escape_markdown_v2: escaping for user-derived text sent with Telegram MarkdownV2

Usage:
    from spendlog.lib.security import constant_time_equals, escape_markdown_v2

    if not constant_time_equals(client_id, settings.gateway_token):
        ...
    safe = escape_markdown_v2(expense.description)
"""

import hashlib
import hmac
import math
import time

import structlog
from telegram.helpers import escape_markdown

logger = structlog.get_logger(__name__)


def hash_uid(user_id: int | str) -> str:
    """Return a 12-char SHA-256 prefix for log-safe user identification."""
    return hashlib.sha256(str(user_id).encode()).hexdigest()[:12]


def constant_time_equals(candidate: str | int | None, expected: str | int | None) -> bool:
    """
    Compare two identifiers without leaking their common prefix length.

    Both sides are compared as UTF-8 strings. A missing value on either side
    never matches, so an unset secret cannot be satisfied by an empty header.

    Args:
        candidate: Value received from the request
        expected: Configured value

    Returns:
        True if both are present and equal
    """
    if candidate is None or expected is None:
        return False
    candidate_bytes = str(candidate).encode("utf-8")
    expected_bytes = str(expected).encode("utf-8")
    if not expected_bytes:
        return False
    return hmac.compare_digest(candidate_bytes, expected_bytes)


def is_request_fresh(
    sent_time_ms: str | int | None,
    max_age_seconds: float,
    now_ms: float | None = None,
    max_skew_seconds: float = 30.0,
) -> bool:
    """
    Check a gateway request timestamp against the staleness window.

    Args:
        sent_time_ms: Epoch milliseconds from the x-custom-request-sent-time header
        max_age_seconds: Maximum allowed age
        now_ms: Current epoch milliseconds (defaults to wall clock)
        max_skew_seconds: How far ahead of now a timestamp may be

    Returns:
        False if the timestamp is missing, unparseable, non-finite, too old,
        or further in the future than the allowed clock skew
    """
    if sent_time_ms is None or sent_time_ms == "":
        return False
    try:
        sent = float(sent_time_ms)
    except (TypeError, ValueError, OverflowError):
        logger.debug("request_sent_time_unparseable")
        return False
    if not math.isfinite(sent):
        logger.debug("request_sent_time_not_finite")
        return False
    if now_ms is None:
        now_ms = time.time() * 1000
    age_ms = now_ms - sent
    return -max_skew_seconds * 1000 <= age_ms < max_age_seconds * 1000


def escape_markdown_v2(text: object) -> str:
    r"""
    Escape Telegram MarkdownV2 special characters via telegram.helpers.

    Escapes: _ * [ ] ( ) ~ ` > # + - = | { } . ! \

    Args:
        text: Value to escape (converted with str())

    Returns:
        Escaped text, or "" for None/empty input
    """
    if text is None or text == "":
        return ""
    return escape_markdown(str(text), version=2)


__all__ = [
    "hash_uid",
    "constant_time_equals",
    "is_request_fresh",
    "escape_markdown_v2",
]
