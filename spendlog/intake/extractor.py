"""
Expense Extractor for the intake pipeline.

Turns gate-approved text into an untrusted CandidateExpense with a single
call to the structured extraction service. The call is never retried here:
a retry would pay for the same message twice.

Failure modes, all raised as ExtractionError(extraction_failed):
- the service (or the client calling it) raised, or timed out
- the service answered with nothing
- the answer is not JSON, or is JSON but not an object
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import date, time
from typing import Any

import structlog

from spendlog.intake.models import CandidateExpense
from spendlog.intake.prompts import EXTRACTION_SCHEMA, build_extraction_messages
from spendlog.lib import errors
from spendlog.lib.exceptions import ExtractionError
from spendlog.services.inference import StructuredExtractor

logger = structlog.get_logger(__name__)


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` block, if the model added one."""
    text = raw.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class ExpenseExtractor:
    """One-shot structured extraction behind the StructuredExtractor capability."""

    def __init__(self, client: StructuredExtractor) -> None:
        self._client = client

    async def extract(
        self,
        text: str,
        context_date: date,
        context_time: time,
        categories: Sequence[str],
    ) -> CandidateExpense:
        """
        Extract one candidate expense from text.

        Args:
            text: Text accepted by the confidence gate
            context_date: "Today" for the model, also anchors relative dates
            context_time: "Now" for the model
            categories: Allowed category names offered to the model

        Returns:
            CandidateExpense with the raw field values

        Raises:
            ExtractionError: On service failure or unusable output
        """
        messages = build_extraction_messages(text, context_date, context_time, categories)

        try:
            raw = await self._client.extract(messages, EXTRACTION_SCHEMA)
        except Exception as e:
            raise ExtractionError(errors.EXTRACTION_FAILED, detail=f"service error: {e}") from e

        if not isinstance(raw, str) or not raw.strip():
            raise ExtractionError(errors.EXTRACTION_FAILED, detail="empty response")

        data = self._parse(raw)
        candidate = CandidateExpense.from_json(data)
        logger.info("expense_extracted", fields=sorted(candidate.present_fields))
        return candidate

    @staticmethod
    def _parse(raw: str) -> dict[str, Any]:
        try:
            data = json.loads(strip_code_fences(raw))
        except json.JSONDecodeError as e:
            raise ExtractionError(errors.EXTRACTION_FAILED, detail="response is not valid JSON") from e

        if not isinstance(data, dict):
            raise ExtractionError(errors.EXTRACTION_FAILED, detail="response is not a JSON object")
        return data


__all__ = ["ExpenseExtractor", "strip_code_fences"]
