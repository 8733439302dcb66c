"""
Record Validator for the expense intake pipeline.

Last line of defence between the extraction service and the store: the
candidate is untrusted model output, so every field is type checked and
normalised before an Expense is built. Any mismatch rejects the whole
record; nothing is partially persisted.

Rules:
- amount, category, description keys must be present (null is allowed for
  category and description, not for amount)
- amount: real number, finite, 0 < amount <= max_amount
- category: lowercased and trimmed; null/empty -> default category; under
  the closed policy values outside the allow-list also map to the default
- description: null/empty -> "expense"; longer than the configured limit rejects
- date/time: null -> validation-time now; otherwise normalised to
  YYYY-MM-DD / HH:MM
- merchant: null/empty -> "unknown"; otherwise lowercased
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import NoReturn

import structlog

from spendlog.config import CategoryPolicy, Settings
from spendlog.intake.models import CandidateExpense, Expense
from spendlog.intake.prompts import DATE_FORMAT, TIME_FORMAT
from spendlog.lib import errors
from spendlog.lib.exceptions import ValidationError

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("amount", "category", "description")

_DATE_INPUT_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%b %d, %Y",
    "%B %d, %Y",
)

_TIME_INPUT_FORMATS: tuple[str, ...] = (
    "%H:%M",
    "%H:%M:%S",
    "%I:%M %p",
    "%I:%M%p",
)


class RecordValidator:
    """Type checks and normalises a CandidateExpense into an Expense."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._categories = frozenset(c.lower() for c in self._settings.categories)

    def validate(
        self,
        candidate: CandidateExpense,
        *,
        user_id: str,
        platform: str,
        now: datetime | None = None,
    ) -> Expense:
        """
        Validate a candidate and build the persistable record.

        Args:
            candidate: Raw extraction output
            user_id: Authorized sender id the record belongs to
            platform: Transport the message came from
            now: Clock for null date/time (defaults to datetime.now())

        Returns:
            Normalised Expense

        Raises:
            ValidationError: On a missing required field, type mismatch or
                out-of-range value
        """
        missing = [name for name in REQUIRED_FIELDS if name not in candidate.present_fields]
        if missing:
            self._fail(f"missing fields: {', '.join(missing)}")

        now = now or datetime.now()

        return Expense(
            user_id=str(user_id),
            amount=self._amount(candidate.amount),
            category=self._category(candidate.category),
            description=self._description(candidate.description),
            date=self._date(candidate.date, now),
            time=self._time(candidate.time, now),
            merchant=self._merchant(candidate.merchant),
            platform=platform,
        )

    # =========================================================================
    # Field rules
    # =========================================================================

    def _amount(self, value: object) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self._fail("amount is not a number")
        try:
            amount = float(value)
        except OverflowError:
            self._fail("amount is not finite")
        if not math.isfinite(amount):
            self._fail("amount is not finite")
        if not 0 < amount <= self._settings.max_amount:
            self._fail("amount out of range")
        return amount

    def _category(self, value: object) -> str:
        default = self._settings.default_category
        category = self._optional_str(value, "category")
        if not category:
            return default
        category = category.lower()
        if self._settings.category_policy == CategoryPolicy.CLOSED and category not in self._categories:
            logger.debug("category_outside_allow_list", category=category, fallback=default)
            return default
        return category

    def _description(self, value: object) -> str:
        description = self._optional_str(value, "description")
        if not description:
            return self._settings.default_description
        if len(description) > self._settings.max_description_length:
            self._fail("description too long")
        return description

    def _merchant(self, value: object) -> str:
        merchant = self._optional_str(value, "merchant")
        if not merchant:
            return self._settings.default_merchant
        return merchant.lower()

    def _date(self, value: object, now: datetime) -> str:
        raw = self._optional_str(value, "date")
        if not raw:
            return now.strftime(DATE_FORMAT)
        parsed = _parse_first(raw, _DATE_INPUT_FORMATS)
        if parsed is None:
            self._fail("unrecognised date")
        return parsed.strftime(DATE_FORMAT)

    def _time(self, value: object, now: datetime) -> str:
        raw = self._optional_str(value, "time")
        if not raw:
            return now.strftime(TIME_FORMAT)
        parsed = _parse_first(raw.upper(), _TIME_INPUT_FORMATS)
        if parsed is None:
            self._fail("unrecognised time")
        return parsed.strftime(TIME_FORMAT)

    def _optional_str(self, value: object, name: str) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            self._fail(f"{name} is not a string")
        return value.strip()

    @staticmethod
    def _fail(detail: str) -> NoReturn:
        raise ValidationError(errors.VALIDATION_FAILED, detail=detail)


def _parse_first(raw: str, formats: tuple[str, ...]) -> datetime | None:
    for fmt in formats:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    return None


__all__ = ["RecordValidator", "REQUIRED_FIELDS"]
