"""
Tests for the Expense Extractor.

Tests cover:
- One service call per extraction with the few-shot messages
- JSON parsing, including fenced answers
- Every failure mode maps to extraction_failed
"""

from __future__ import annotations

import json
from datetime import date, time

import pytest

from spendlog.intake.extractor import ExpenseExtractor, strip_code_fences
from spendlog.lib import errors
from spendlog.lib.exceptions import ExternalServiceError, ExtractionError

TODAY = date(2026, 10, 17)
NOW = time(19, 30)
CATEGORIES = ("food", "misc")


class _Client:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list = []

    async def extract(self, messages, schema):
        self.calls.append((messages, schema))
        if self.error is not None:
            raise self.error
        return self.response


class TestSuccessfulExtraction:
    """Well-formed answers become CandidateExpense."""

    @pytest.mark.asyncio
    async def test_parses_candidate(self) -> None:
        client = _Client(json.dumps({
            "amount": 150, "category": "food", "description": "dinner",
            "date": "2026-10-17", "time": "19:30", "merchant": "dominos",
        }))
        candidate = await ExpenseExtractor(client).extract("Spent 150 for dinner at Dominos", TODAY, NOW, CATEGORIES)

        assert candidate.amount == 150
        assert candidate.merchant == "dominos"
        assert candidate.present_fields == {"amount", "category", "description", "date", "time", "merchant"}

    @pytest.mark.asyncio
    async def test_single_call_with_text_last(self) -> None:
        client = _Client('{"amount": 1, "category": null, "description": null}')
        await ExpenseExtractor(client).extract("Tea 20 at stall", TODAY, NOW, CATEGORIES)

        assert len(client.calls) == 1
        messages, schema = client.calls[0]
        assert messages[-1] == {"role": "user", "content": "Tea 20 at stall"}
        assert "amount" in schema["required"]

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self) -> None:
        client = _Client('```json\n{"amount": 99, "category": "food", "description": "snack"}\n```')
        candidate = await ExpenseExtractor(client).extract("Snack 99", TODAY, NOW, CATEGORIES)
        assert candidate.amount == 99

    @pytest.mark.asyncio
    async def test_missing_keys_are_not_present(self) -> None:
        client = _Client('{"amount": 99}')
        candidate = await ExpenseExtractor(client).extract("Snack 99", TODAY, NOW, CATEGORIES)
        assert candidate.present_fields == {"amount"}
        assert candidate.category is None


class TestExtractionFailures:
    """Service errors and unusable output raise ExtractionError."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [None, "", "   ", "not json at all", "{amount: 150", "[1, 2, 3]", '"just a string"'],
    )
    async def test_unusable_response(self, response) -> None:
        client = _Client(response)
        with pytest.raises(ExtractionError) as exc_info:
            await ExpenseExtractor(client).extract("Lunch 150", TODAY, NOW, CATEGORIES)

        assert exc_info.value.code == errors.EXTRACTION_FAILED
        assert exc_info.value.user_message
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_service_error_not_retried(self) -> None:
        client = _Client(error=ExternalServiceError("workers_ai returned HTTP 503"))
        with pytest.raises(ExtractionError):
            await ExpenseExtractor(client).extract("Lunch 150", TODAY, NOW, CATEGORIES)
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ValueError("bad json from client"), KeyError("result"), TimeoutError()])
    async def test_any_client_error_is_extraction_failure(self, error: Exception) -> None:
        client = _Client(error=error)
        with pytest.raises(ExtractionError) as exc_info:
            await ExpenseExtractor(client).extract("Lunch 150", TODAY, NOW, CATEGORIES)
        assert exc_info.value.code == errors.EXTRACTION_FAILED

    @pytest.mark.asyncio
    async def test_non_string_answer_is_extraction_failure(self) -> None:
        with pytest.raises(ExtractionError):
            await ExpenseExtractor(_Client({"amount": 150})).extract("Lunch 150", TODAY, NOW, CATEGORIES)


class TestStripCodeFences:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ('```json\n{"a": 1}\n```', '{"a": 1}'),
            ('```\n{"a": 1}\n```', '{"a": 1}'),
            ('  {"a": 1}  ', '{"a": 1}'),
        ],
    )
    def test_strip(self, raw: str, expected: str) -> None:
        assert strip_code_fences(raw) == expected
