"""
Expense Intake Pipeline.

Linear state machine with early exit:

    received -> sanitized -> signal_checked -> confidence_gated
             -> extracted -> validated -> persisted
    (any step) -> rejected

No state is revisited and the three admission phases (sanitizer, signal
check, paid sentiment gate) always run in that order before the paid
extraction call. Every stage failure is recovered into an IntakeOutcome;
nothing raised by a stage escapes process().

Routine rejections are logged at info. A storage failure after a successful
validation is the one outcome flagged for escalation: it is logged at error
and never retried here, since a silent retry could insert the expense twice.

Usage:
    pipeline = ExpenseIntakePipeline(
        settings=settings,
        sanitizer=TextSanitizer(settings),
        gate=ConfidenceGate(settings, scorer),
        extractor=ExpenseExtractor(extraction_client),
        validator=RecordValidator(settings),
        store=store,
    )
    outcome = await pipeline.process(RawMessage(text, sender_id, chat_id))
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from spendlog.config import Settings
from spendlog.intake.confidence import ConfidenceGate
from spendlog.intake.extractor import ExpenseExtractor
from spendlog.intake.models import Expense, IntakeOutcome, IntakeStage, RawMessage
from spendlog.intake.sanitizer import TextSanitizer
from spendlog.intake.signals import detect_signals
from spendlog.intake.validator import RecordValidator
from spendlog.lib import errors
from spendlog.lib.exceptions import (
    ConfidenceRejection,
    DatabaseError,
    IntakeRejection,
    SanitizationError,
    SignalRejection,
    StorageError,
)
from spendlog.lib.security import escape_markdown_v2, hash_uid

if TYPE_CHECKING:
    from spendlog.services.expense_store import ExpenseStore

logger = structlog.get_logger(__name__)

# Gate codes decided before any paid call
_SIGNAL_CODES = frozenset({errors.NO_EXPENSE_DETECTED, errors.NO_AMOUNT_DETECTED})


def format_amount(amount: float) -> str:
    """150.0 -> "150", 12.5 -> "12.5"."""
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def format_confirmation(expense: Expense) -> str:
    """MarkdownV2 confirmation for a persisted expense, user values escaped."""
    return (
        f"✅ Logged *{escape_markdown_v2(format_amount(expense.amount))}* "
        f"\\({escape_markdown_v2(expense.category)}\\) "
        f"for _{escape_markdown_v2(expense.description)}_ "
        f"at _{escape_markdown_v2(expense.merchant)}_\\."
    )


class ExpenseIntakePipeline:
    """Runs one message through every intake stage."""

    def __init__(
        self,
        settings: Settings,
        sanitizer: TextSanitizer,
        gate: ConfidenceGate,
        extractor: ExpenseExtractor,
        validator: RecordValidator,
        store: ExpenseStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._sanitizer = sanitizer
        self._gate = gate
        self._extractor = extractor
        self._validator = validator
        self._store = store
        self._clock = clock or datetime.now

    async def process(self, message: RawMessage) -> IntakeOutcome:
        """
        Run a message through the pipeline.

        Args:
            message: Text from the already authorized sender

        Returns:
            IntakeOutcome, ok with record id and confirmation on success
        """
        stage = IntakeStage.RECEIVED
        try:
            sanitized = self._sanitizer.sanitize(message.text)
            if not sanitized.is_valid:
                raise SanitizationError(
                    sanitized.error_code or errors.TEXT_EMPTY,
                    user_message=sanitized.user_message,
                )
            text = sanitized.sanitized_text or ""
            stage = IntakeStage.SANITIZED

            report = detect_signals(text)
            stage = IntakeStage.SIGNAL_CHECKED

            decision = await self._gate.evaluate(report, text)
            if not decision.proceed:
                code = decision.error_code or errors.LOW_SENTIMENT
                rejection = SignalRejection if code in _SIGNAL_CODES else ConfidenceRejection
                raise rejection(code, user_message=decision.user_message)
            stage = IntakeStage.CONFIDENCE_GATED

            now = self._clock()
            candidate = await self._extractor.extract(
                text, now.date(), now.time(), self._settings.categories
            )
            stage = IntakeStage.EXTRACTED

            expense = self._validator.validate(
                candidate,
                user_id=message.sender_id,
                platform=self._settings.platform,
                now=self._clock(),
            )
            stage = IntakeStage.VALIDATED

            try:
                record_id = await self._store.insert(expense)
            except DatabaseError as e:
                raise StorageError(errors.STORAGE_FAILED, detail=str(e)) from e

        except IntakeRejection as rejection:
            return self._rejected(stage, rejection, message)

        logger.info(
            "expense_persisted",
            record_id=record_id,
            user=hash_uid(message.sender_id),
            category=expense.category,
        )
        return IntakeOutcome(
            ok=True,
            stage=IntakeStage.PERSISTED,
            expense=expense,
            record_id=record_id,
            confirmation=format_confirmation(expense),
        )

    @staticmethod
    def _rejected(stage: IntakeStage, rejection: IntakeRejection, message: RawMessage) -> IntakeOutcome:
        log = logger.error if rejection.escalate else logger.info
        log(
            "intake_rejected",
            after_stage=stage.value,
            error_code=rejection.code,
            detail=rejection.detail,
            user=hash_uid(message.sender_id),
        )
        return IntakeOutcome(
            ok=False,
            stage=IntakeStage.REJECTED,
            reason=rejection.code,
            user_message=rejection.user_message,
            status_code=rejection.status_code,
            escalate=rejection.escalate,
        )


__all__ = [
    "ExpenseIntakePipeline",
    "format_amount",
    "format_confirmation",
]
