"""
Prompt assembly for the two paid inference calls.

- Sentiment prompt: asks the scoring service whether a text is a first-person,
  past or present expense, answered as {"score": 0.0..1.0}.
- Extraction messages: a fixed few-shot chat with today's date/time and the
  allowed categories injected, ending with the user's text.

Dates are rendered as YYYY-MM-DD and times as HH:MM (24h), the same fixed
width forms the record validator stores.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, time, timedelta
from typing import Any

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

# Gemini responseSchema (OpenAPI subset)
SENTIMENT_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "score": {
            "type": "NUMBER",
            "description": (
                "A score between 0.0 and 1.0. 1.0 indicates the USER paid or "
                "spent money (explicit or implicit)."
            ),
            "minimum": 0,
            "maximum": 1,
        }
    },
    "required": ["score"],
}

# JSON schema for the extraction service's response_format
EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "amount": {"type": "number"},
        "category": {"type": "string"},
        "description": {"type": "string"},
        "date": {"type": "string"},
        "time": {"type": "string"},
        "merchant": {"type": ["string", "null"]},
    },
    "required": ["amount", "category", "description", "date", "time", "merchant"],
}

_SENTIMENT_TEMPLATE = """You are a strict classifier for a personal expense tracker.

Decide whether the message below describes money that the USER (the person
writing) has spent or paid, now or in the past. The subject may be explicit
("I paid 200 for lunch") or implied ("Lunch 150 at Dominos", "150 dinner swiggy").

Score 1.0 when the message is the user's own expense.
Score close to 0.0 when the message is:
- someone else's spending ("Dad paid 500 for groceries")
- income, refunds or money received ("Got 500 from a friend")
- a general fact or opinion about prices ("Rent is expensive these days")
- a future, planned or hypothetical expense ("I will buy a phone for 20000")
Use values in between only when genuinely unsure.

Respond with JSON only: {{"score": <number between 0 and 1>}}

Message: \"\"\"{text}\"\"\""""

_EXTRACTION_SYSTEM_TEMPLATE = """You extract a single personal expense from a short chat message.

Today's date is {today} and the current time is {now}.
Allowed categories: {categories}.

Respond with exactly one JSON object and nothing else: no markdown, no code
fences, no explanation. The object has these keys:
- "amount": number, the money spent, without currency symbols
- "category": string, one of the allowed categories
- "description": string, two or three words describing what was bought
- "date": string in YYYY-MM-DD format; resolve words like "yesterday" against today's date; use today's date when none is given
- "time": string in HH:MM 24-hour format; use the current time when none is given
- "merchant": string, the shop, app or service paid, lowercase; null when not mentioned

Use null for any value that cannot be determined."""


def build_sentiment_prompt(text: str) -> str:
    """Build the first-person expense classification prompt for one text."""
    return _SENTIMENT_TEMPLATE.format(text=text.replace('"""', '"'))


def build_extraction_system_prompt(
    context_date: date,
    context_time: time,
    categories: Sequence[str],
) -> str:
    """System instruction for the extraction service."""
    return _EXTRACTION_SYSTEM_TEMPLATE.format(
        today=context_date.strftime(DATE_FORMAT),
        now=context_time.strftime(TIME_FORMAT),
        categories=", ".join(categories),
    )


def build_extraction_messages(
    text: str,
    context_date: date,
    context_time: time,
    categories: Sequence[str],
) -> list[dict[str, str]]:
    """
    Build the few-shot chat for expense extraction.

    Worked examples cover: merchant and category inference, "paid to"
    phrasing, a relative date resolved against context_date, and minimal
    input with a null merchant. The real text is the final user turn.

    Args:
        text: Text that passed the confidence gate
        context_date: Date used for "today" and relative dates
        context_time: Time used for "now"
        categories: Allowed category names

    Returns:
        List of {"role", "content"} messages
    """
    today = context_date.strftime(DATE_FORMAT)
    yesterday = (context_date - timedelta(days=1)).strftime(DATE_FORMAT)
    now = context_time.strftime(TIME_FORMAT)

    def example(amount: int, category: str, description: str, day: str, merchant: str | None) -> str:
        merchant_json = f'"{merchant}"' if merchant else "null"
        return (
            f'{{"amount": {amount}, "category": "{category}", "description": "{description}", '
            f'"date": "{day}", "time": "{now}", "merchant": {merchant_json}}}'
        )

    return [
        {"role": "system", "content": build_extraction_system_prompt(context_date, context_time, categories)},
        {"role": "user", "content": "Spent 500 on swiggy for groceries"},
        {"role": "assistant", "content": example(500, "grocery", "groceries", today, "swiggy")},
        {"role": "user", "content": "Paid 349 to zomato for dinner"},
        {"role": "assistant", "content": example(349, "food", "dinner", today, "zomato")},
        {"role": "user", "content": "I paid 349 to zomato for dinner yesterday"},
        {"role": "assistant", "content": example(349, "food", "dinner", yesterday, "zomato")},
        {"role": "user", "content": "Lunch 120"},
        {"role": "assistant", "content": example(120, "food", "lunch", today, None)},
        {"role": "user", "content": text},
    ]
