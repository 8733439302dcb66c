"""
Intake Pipeline Data Models.

Every stage owns the record it produces and hands it to the next stage by
value. All records are frozen: nothing is mutated once a stage returns it.

    RawMessage -> SanitizationResult -> SignalReport -> GateDecision
               -> CandidateExpense -> Expense -> IntakeOutcome
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class IntakeStage(StrEnum):
    """States of the intake state machine (linear, no state revisited)."""

    RECEIVED = "received"
    SANITIZED = "sanitized"
    SIGNAL_CHECKED = "signal_checked"
    CONFIDENCE_GATED = "confidence_gated"
    EXTRACTED = "extracted"
    VALIDATED = "validated"
    PERSISTED = "persisted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class RawMessage:
    """Message as delivered by the transport/auth layer."""

    text: str
    sender_id: str
    chat_id: str


@dataclass(frozen=True)
class SanitizationResult:
    """Outcome of the text sanitizer."""

    is_valid: bool
    sanitized_text: str | None = None
    user_message: str | None = None
    error_code: str | None = None


@dataclass(frozen=True)
class SignalReport:
    """Deterministic expense evidence found in one text.

    Invariant: amount_candidate is not None iff has_number.
    """

    has_number: bool = False
    has_currency: bool = False
    has_expense_verb: bool = False
    has_merchant_like: bool = False
    has_date: bool = False
    has_time: bool = False
    amount_candidate: float | None = None
    currency_symbol: str | None = None
    inferred_description: str | None = None

    @property
    def has_any_signal(self) -> bool:
        return (
            self.has_number
            or self.has_currency
            or self.has_expense_verb
            or self.has_merchant_like
            or self.has_date
            or self.has_time
        )

    @property
    def has_amount_evidence(self) -> bool:
        return self.has_number or self.has_currency


@dataclass(frozen=True)
class GateDecision:
    """Confidence gate verdict. score is None when no paid call was made."""

    proceed: bool
    error_code: str | None = None
    user_message: str | None = None
    score: float | None = None
    scorer_called: bool = False


@dataclass(frozen=True)
class CandidateExpense:
    """Untrusted extraction output. Never persisted without validation.

    Field values are kept exactly as the extraction service returned them,
    so they may have the wrong type. present_fields lists the keys that
    were in the JSON object, null or not.
    """

    amount: Any = None
    category: Any = None
    description: Any = None
    date: Any = None
    time: Any = None
    merchant: Any = None
    present_fields: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CandidateExpense:
        """Build a candidate from a decoded JSON object, ignoring unknown keys."""
        known = ("amount", "category", "description", "date", "time", "merchant")
        return cls(
            **{key: data.get(key) for key in known},
            present_fields=frozenset(key for key in known if key in data),
        )


@dataclass(frozen=True)
class Expense:
    """Validated, persistable expense record."""

    user_id: str
    amount: float
    category: str
    description: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM, 24h
    merchant: str
    platform: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class IntakeOutcome:
    """Caller-visible result of one pass through the pipeline."""

    ok: bool
    stage: IntakeStage
    reason: str | None = None
    user_message: str | None = None
    status_code: int = 200
    expense: Expense | None = None
    record_id: int | None = None
    confirmation: str | None = None
    escalate: bool = False

    def to_response(self) -> dict[str, Any]:
        """Body for the webhook caller."""
        if self.ok:
            return {"ok": True, "id": self.record_id}
        return {"ok": False, "reason": self.reason}
