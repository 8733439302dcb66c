"""
Signal Detector for the expense intake pipeline.

Deterministic lexical scan that turns raw text into a SignalReport. No I/O,
no external calls, same input always gives the same report.

The report is the first cost gate: text without amount or currency evidence
is turned away here, before any paid inference call. For that reason the
amount scan runs before the merchant scan, and merchants are only looked for
once an amount or currency was found.

Examples:
    "Spent 150 for dinner at Dominos" -> amount 150.0, verb, merchant "Dominos"
    "150 dinner swiggy"               -> amount 150.0
    "20% off everything"              -> no amount (percentage)
    "Rent is expensive these days"    -> no signals at all
"""

from __future__ import annotations

import math
import re
import string

from spendlog.intake.models import SignalReport

# Currency markers, symbols and whole-word names
_CURRENCY_PATTERN = re.compile(
    r"[₹$€£¥]|\b(?:rs|inr|rupees?|usd|dollars?|bucks|eur|euros?|gbp|pounds?)\b",
    re.IGNORECASE,
)

# Numeric token with optional currency before or after.
#
# Ignored: tokens glued to letters or digits (identifiers), tokens followed by
# % or / (percentages, fractions), tokens that are one piece of a dash or
# colon separated date/time, and tokens with more than one decimal point.
_AMOUNT_PATTERN = re.compile(
    r"""
    (?<![\w.,/])(?<!\d[-:])
    (?:(?P<pre>[₹$€£¥]|\b(?:rs\.?|inr|usd|eur|gbp))\s?)?
    (?P<num>
        \d{1,3}(?:,\d{2})*(?:,\d{3})+(?:\.\d+)?    # 1,234.56  1,23,456
      | \d{1,3}(?:[ ]\d{3})+(?:\.\d+)?             # 1 234 567
      | \d+(?:[.,]\d+)?                            # 150  12.5  1,50
      | \.\d+                                      # .50
    )
    (?:
        \s?(?P<post>rs|inr|rupees?|usd|dollars?|bucks|eur|euros?|gbp|pounds?)\b
      | \s?(?P<post_sym>[₹$€£¥])
      | (?![\w%/])(?![.,:\-]\d)
    )
    """,
    re.IGNORECASE | re.VERBOSE,
)

_DECIMAL_COMMA = re.compile(r"\d+,\d{2}")

EXPENSE_VERBS: tuple[str, ...] = (
    "spent", "spend", "paid", "pay", "bought", "ordered", "purchased",
    "billed", "charged", "invested", "donated", "tipped", "booked",
    "subscribed", "renewed", "recharged", "rented", "cost", "costs",
)

_VERB_PATTERN = re.compile(
    r"\b(?:" + "|".join(EXPENSE_VERBS) + r")\b",
    re.IGNORECASE,
)

# Words that follow a preposition or open a sentence without naming a merchant
_NON_MERCHANT_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "my", "our", "his", "her", "their", "this", "that",
    "i", "me", "we", "it", "for",
    "cash", "card", "upi", "credit", "debit", "total", "each", "all",
    "today", "yesterday", "tomorrow", "morning", "afternoon", "evening", "night",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    *EXPENSE_VERBS,
})

_PREPOSITION_MERCHANT = re.compile(
    r"\b(?i:at|from|via|by|in|on)\s+"
    r"(?P<merchant>[A-Za-z][\w&'-]*(?:\s+[A-Z][\w&'-]*){0,3})"
)

_CAPITALIZED_MERCHANT = re.compile(r"\b[A-Z][A-Za-z&'-]+(?:\s+[A-Z][A-Za-z&'-]+){0,3}")

_ISO_DATE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
_COMMON_DATE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
_TIME_24H = re.compile(r"\b(?:[01]?\d|2[0-3]):[0-5]\d\b")

DESCRIPTION_WINDOW = 30


def detect_signals(text: str) -> SignalReport:
    """Scan text for expense evidence.

    Args:
        text: Sanitized message text

    Returns:
        SignalReport; amount_candidate is set exactly when has_number is True
    """
    if not text:
        return SignalReport()

    currency_match = _CURRENCY_PATTERN.search(text)
    has_currency = currency_match is not None
    currency_symbol = _normalize_currency(currency_match.group(0)) if currency_match else None

    amount: float | None = None
    description: str | None = None
    amount_match = _AMOUNT_PATTERN.search(text)
    if amount_match:
        amount = normalize_amount(amount_match.group("num"))
        if amount is not None:
            description = _window(text, amount_match.start(), amount_match.end())
            marker = amount_match.group("pre") or amount_match.group("post") or amount_match.group("post_sym")
            if marker:
                currency_symbol = _normalize_currency(marker)
                has_currency = True

    has_number = amount is not None
    has_expense_verb = _VERB_PATTERN.search(text) is not None

    has_merchant_like = False
    if has_number or has_currency:
        merchant_span = _find_merchant(text)
        if merchant_span is not None:
            has_merchant_like = True
            if description is None:
                description = _window(text, *merchant_span)

    has_date = bool(_ISO_DATE.search(text) or _COMMON_DATE.search(text))
    has_time = _TIME_24H.search(text) is not None

    return SignalReport(
        has_number=has_number,
        has_currency=has_currency,
        has_expense_verb=has_expense_verb,
        has_merchant_like=has_merchant_like,
        has_date=has_date,
        has_time=has_time,
        amount_candidate=amount,
        currency_symbol=currency_symbol,
        inferred_description=description or None,
    )


def normalize_amount(raw: str) -> float | None:
    """Parse a numeric token into a float.

    "1,234.56" -> 1234.56, "1,50" -> 1.5 (decimal comma), "1,234,567" -> 1234567.0,
    ".5" -> 0.5. Returns None for multi-decimal tokens or unparseable input.
    """
    token = raw.strip().replace(" ", "")
    if not token or token.count(".") > 1:
        return None

    if "." not in token and token.count(",") == 1 and _DECIMAL_COMMA.fullmatch(token):
        token = token.replace(",", ".")
    else:
        token = token.replace(",", "")

    if token.startswith("."):
        token = "0" + token

    try:
        value = float(token)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _find_merchant(text: str) -> tuple[int, int] | None:
    """Return the span of the first merchant-like token sequence, if any."""
    for match in _PREPOSITION_MERCHANT.finditer(text):
        first_word = match.group("merchant").split()[0].lower()
        if first_word not in _NON_MERCHANT_WORDS:
            return match.span("merchant")

    for match in _CAPITALIZED_MERCHANT.finditer(text):
        if match.group(0).split()[0].lower() not in _NON_MERCHANT_WORDS:
            return match.span()

    return None


def _window(text: str, start: int, end: int) -> str:
    """Whitespace-collapsed text around [start, end), punctuation trimmed."""
    snippet = text[max(0, start - DESCRIPTION_WINDOW):end + DESCRIPTION_WINDOW]
    snippet = " ".join(snippet.split())
    return snippet.strip(string.punctuation + " ")


def _normalize_currency(marker: str) -> str:
    marker = marker.strip().lower()
    return marker.rstrip(".")
