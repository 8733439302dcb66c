"""
Tests for the Confidence Gate.

Tests cover:
- Free rejections never call the scorer
- Threshold comparison (default 0.95, configurable)
- Scorer errors and unusable scores map to sentiment_unavailable
"""

from __future__ import annotations

import math

import httpx
import pytest

from spendlog.config import Settings
from spendlog.intake.confidence import ConfidenceGate
from spendlog.intake.models import SignalReport
from spendlog.intake.signals import detect_signals
from spendlog.lib import errors
from spendlog.lib.exceptions import ExternalServiceError


class _Scorer:
    def __init__(self, value=0.99, error: Exception | None = None) -> None:
        self.value = value
        self.error = error
        self.prompts: list[str] = []

    async def score(self, prompt, schema):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.value


AMOUNT_REPORT = SignalReport(has_number=True, amount_candidate=150.0, has_expense_verb=True)


class TestFreeRejections:
    """Steps 1 and 2 cost nothing."""

    @pytest.mark.asyncio
    async def test_no_signal_rejects_without_scorer_call(self) -> None:
        scorer = _Scorer()
        gate = ConfidenceGate(Settings(), scorer)

        decision = await gate.evaluate(detect_signals("Rent is expensive these days"), "Rent is expensive these days")

        assert decision.proceed is False
        assert decision.error_code == errors.NO_EXPENSE_DETECTED
        assert decision.scorer_called is False
        assert "Lunch 150 at Dominos" in decision.user_message
        assert scorer.prompts == []

    @pytest.mark.asyncio
    async def test_signals_without_amount_reject(self) -> None:
        scorer = _Scorer()
        gate = ConfidenceGate(Settings(), scorer)
        report = SignalReport(has_expense_verb=True, has_date=True)

        decision = await gate.evaluate(report, "bought it on 2024-01-01")

        assert decision.error_code == errors.NO_AMOUNT_DETECTED
        assert scorer.prompts == []

    @pytest.mark.asyncio
    async def test_currency_alone_counts_as_amount_evidence(self) -> None:
        scorer = _Scorer(0.97)
        gate = ConfidenceGate(Settings(), scorer)

        decision = await gate.evaluate(SignalReport(has_currency=True), "Spent rs on tea")

        assert decision.proceed is True
        assert len(scorer.prompts) == 1


class TestPaidScore:
    """Step 3: exactly one scorer call, accept only at or above threshold."""

    @pytest.mark.asyncio
    async def test_high_score_proceeds(self) -> None:
        scorer = _Scorer(0.99)
        decision = await ConfidenceGate(Settings(), scorer).evaluate(AMOUNT_REPORT, "Spent 150 for dinner")

        assert decision.proceed is True
        assert decision.score == 0.99
        assert decision.scorer_called is True
        assert len(scorer.prompts) == 1
        assert "Spent 150 for dinner" in scorer.prompts[0]

    @pytest.mark.asyncio
    async def test_score_equal_to_threshold_proceeds(self) -> None:
        decision = await ConfidenceGate(Settings(), _Scorer(0.95)).evaluate(AMOUNT_REPORT, "t")
        assert decision.proceed is True

    @pytest.mark.asyncio
    async def test_third_party_score_rejected(self) -> None:
        decision = await ConfidenceGate(Settings(), _Scorer(0.05)).evaluate(AMOUNT_REPORT, "Dad paid 500")

        assert decision.proceed is False
        assert decision.error_code == errors.LOW_SENTIMENT
        assert decision.score == 0.05

    @pytest.mark.asyncio
    async def test_threshold_is_configurable(self) -> None:
        gate = ConfidenceGate(Settings(sentiment_threshold=0.5), _Scorer(0.6))
        assert (await gate.evaluate(AMOUNT_REPORT, "t")).proceed is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "value",
        [None, "0.99", True, math.nan, math.inf, -0.1, 1.5, 10**400],
    )
    async def test_unusable_score_is_unavailable(self, value) -> None:
        decision = await ConfidenceGate(Settings(), _Scorer(value)).evaluate(AMOUNT_REPORT, "t")

        assert decision.proceed is False
        assert decision.error_code == errors.SENTIMENT_UNAVAILABLE
        assert decision.scorer_called is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ExternalServiceError("gemini timed out"),
            httpx.ConnectError("refused"),
            ValueError("bad json from client"),
            KeyError("candidates"),
            TimeoutError(),
        ],
    )
    async def test_scorer_error_is_unavailable(self, error: Exception) -> None:
        scorer = _Scorer(error=error)
        decision = await ConfidenceGate(Settings(), scorer).evaluate(AMOUNT_REPORT, "t")

        assert decision.error_code == errors.SENTIMENT_UNAVAILABLE
        assert len(scorer.prompts) == 1
