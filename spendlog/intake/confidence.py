"""
Confidence Gate for the expense intake pipeline.

Decides whether a sanitized text may proceed to the paid extraction call.
Three strictly ordered steps, cheapest first:

1. free:  no signal at all                  -> no_expense_detected
2. free:  no amount or currency evidence    -> no_amount_detected
3. paid:  one sentiment scoring call
          error / no usable score           -> sentiment_unavailable
          score below threshold             -> low_sentiment

Only step 3 costs money, and it runs at most once per message.

Usage:
    gate = ConfidenceGate(settings, GeminiTextScorer.from_settings(settings))
    decision = await gate.evaluate(detect_signals(text), text)
    if not decision.proceed:
        ...
"""

from __future__ import annotations

import math

import structlog

from spendlog.config import Settings
from spendlog.intake.models import GateDecision, SignalReport
from spendlog.intake.prompts import SENTIMENT_RESPONSE_SCHEMA, build_sentiment_prompt
from spendlog.lib import errors
from spendlog.services.inference import TextScorer

logger = structlog.get_logger(__name__)


class ConfidenceGate:
    """Cheap signal checks first, one paid sentiment score second."""

    def __init__(self, settings: Settings, scorer: TextScorer) -> None:
        self._threshold = settings.sentiment_threshold
        self._scorer = scorer

    async def evaluate(self, report: SignalReport, text: str) -> GateDecision:
        """
        Decide whether text is confidently a first-person expense.

        Args:
            report: Signals detected in text
            text: Sanitized message text

        Returns:
            GateDecision; proceed=True only when the score met the threshold
        """
        if not report.has_any_signal:
            return self._reject(errors.NO_EXPENSE_DETECTED)

        if not report.has_amount_evidence:
            return self._reject(errors.NO_AMOUNT_DETECTED)

        score = await self._score(text)
        if score is None:
            return self._reject(errors.SENTIMENT_UNAVAILABLE, scorer_called=True)

        if score < self._threshold:
            return self._reject(errors.LOW_SENTIMENT, score=score, scorer_called=True)

        logger.info("confidence_gate_passed", score=score, threshold=self._threshold)
        return GateDecision(proceed=True, score=score, scorer_called=True)

    async def _score(self, text: str) -> float | None:
        try:
            score = await self._scorer.score(build_sentiment_prompt(text), SENTIMENT_RESPONSE_SCHEMA)
        except Exception as e:
            logger.info("sentiment_call_failed", error=str(e), error_type=type(e).__name__)
            return None

        if isinstance(score, bool) or not isinstance(score, (int, float)):
            return None
        try:
            score = float(score)
        except OverflowError:
            return None
        if not math.isfinite(score) or not 0.0 <= score <= 1.0:
            return None
        return score

    def _reject(
        self,
        code: str,
        score: float | None = None,
        scorer_called: bool = False,
    ) -> GateDecision:
        logger.info("confidence_gate_rejected", error_code=code, score=score, scorer_called=scorer_called)
        return GateDecision(
            proceed=False,
            error_code=code,
            user_message=errors.get_user_message(code),
            score=score,
            scorer_called=scorer_called,
        )


__all__ = ["ConfidenceGate"]
