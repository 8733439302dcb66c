"""
Text Sanitizer for the expense intake pipeline.

Syntactic gatekeeper that runs before every other stage. No downstream stage
ever sees text that has not passed through here.

Canonical policy (all limits come from Settings):
- trimmed length between min_length and max_length, inclusive
- no HTML-tag-like substring ("<...>")
- only letters, digits, whitespace, the allowed punctuation and currency symbols
- at least one letter AND at least one digit
- at most max_words words

HTML-tag and character-set rejections are silent: the user gets no hint
about which rule the text broke.
"""

from __future__ import annotations

import re

import structlog

from spendlog.config import Settings
from spendlog.lib import errors
from spendlog.intake.models import SanitizationResult

logger = structlog.get_logger(__name__)

_HTML_TAG = re.compile(r"<[^<>]*>")


class TextSanitizer:
    """Enforces length, character-set, and structural limits on raw text."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._allowed_symbols = frozenset(
            self._settings.allowed_punctuation + self._settings.allowed_currency_symbols
        )

    def sanitize(self, text: str | None) -> SanitizationResult:
        """
        Check raw text against the sanitizer policy.

        Args:
            text: Raw message text

        Returns:
            SanitizationResult with the trimmed text on success, or an
            error code and optional user message on rejection
        """
        if not text or not text.strip():
            return self._reject(errors.TEXT_EMPTY)

        trimmed = text.strip()
        settings = self._settings

        if len(trimmed) < settings.min_length:
            return self._reject(errors.TEXT_TOO_SHORT)

        if len(trimmed) > settings.max_length:
            return self._reject(errors.TEXT_TOO_LONG)

        if _HTML_TAG.search(trimmed):
            return self._reject(errors.TEXT_HTML_TAG)

        if not all(self._is_allowed(ch) for ch in trimmed):
            return self._reject(errors.TEXT_DISALLOWED_CHARACTERS)

        has_letter = any(ch.isalpha() for ch in trimmed)
        has_digit = any(ch.isdigit() for ch in trimmed)
        if not (has_letter and has_digit):
            return self._reject(errors.TEXT_NEEDS_LETTER_AND_DIGIT)

        if len(trimmed.split()) > settings.max_words:
            return self._reject(errors.TEXT_TOO_MANY_WORDS)

        return SanitizationResult(is_valid=True, sanitized_text=trimmed)

    def _is_allowed(self, ch: str) -> bool:
        return ch.isalnum() or ch.isspace() or ch in self._allowed_symbols

    @staticmethod
    def _reject(code: str) -> SanitizationResult:
        logger.debug("text_sanitizer_rejected", error_code=code)
        return SanitizationResult(
            is_valid=False,
            user_message=errors.get_user_message(code),
            error_code=code,
        )


def sanitize_text(text: str | None, settings: Settings | None = None) -> SanitizationResult:
    """Convenience wrapper around TextSanitizer.sanitize."""
    return TextSanitizer(settings).sanitize(text)
