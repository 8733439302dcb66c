"""
Expense intake package for spendlog.

Stages, in the order the pipeline runs them:
- sanitizer.py: syntactic gatekeeper for raw text
- signals.py: deterministic expense evidence (amount, verb, merchant, date/time)
- confidence.py: free signal checks, then one paid sentiment score
- extractor.py: one paid structured extraction call
- validator.py: type and range checks, normalisation into an Expense
- pipeline.py: the state machine wiring the stages together

Usage:
    from spendlog.intake import ExpenseIntakePipeline, RawMessage
"""

from spendlog.intake.models import (
    CandidateExpense,
    Expense,
    GateDecision,
    IntakeOutcome,
    IntakeStage,
    RawMessage,
    SanitizationResult,
    SignalReport,
)
from spendlog.intake.sanitizer import TextSanitizer, sanitize_text
from spendlog.intake.signals import detect_signals, normalize_amount
from spendlog.intake.confidence import ConfidenceGate
from spendlog.intake.extractor import ExpenseExtractor
from spendlog.intake.validator import RecordValidator
from spendlog.intake.pipeline import ExpenseIntakePipeline, format_confirmation

__all__ = [
    # Models
    "CandidateExpense",
    "Expense",
    "GateDecision",
    "IntakeOutcome",
    "IntakeStage",
    "RawMessage",
    "SanitizationResult",
    "SignalReport",
    # Stages
    "TextSanitizer",
    "sanitize_text",
    "detect_signals",
    "normalize_amount",
    "ConfidenceGate",
    "ExpenseExtractor",
    "RecordValidator",
    "ExpenseIntakePipeline",
    "format_confirmation",
]
