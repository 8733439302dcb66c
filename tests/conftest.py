"""
Shared test fixtures for spendlog.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode)
- Settings with a known sender, gateway token and categories
- Expense store backed by in-memory SQLite
- Deterministic stub scorer and extractor (no network)
- A fixed clock and a fully wired intake pipeline

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("SPENDLOG_DEV_MODE", "1")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from spendlog.config import Settings  # noqa: E402
from spendlog.intake.confidence import ConfidenceGate  # noqa: E402
from spendlog.intake.extractor import ExpenseExtractor  # noqa: E402
from spendlog.intake.pipeline import ExpenseIntakePipeline  # noqa: E402
from spendlog.intake.sanitizer import TextSanitizer  # noqa: E402
from spendlog.intake.validator import RecordValidator  # noqa: E402
from spendlog.models.base import Base  # noqa: E402
from spendlog.services.expense_store import SqlExpenseStore  # noqa: E402

AUTHORIZED_SENDER = "424242"
GATEWAY_TOKEN = "gateway-test-token"
FIXED_NOW = datetime(2026, 10, 17, 19, 30)


# ---------------------------------------------------------------------------
# 2. Stubs for the paid inference capabilities
# ---------------------------------------------------------------------------


class StubScorer:
    """TextScorer returning a fixed score, recording every prompt."""

    def __init__(self, value: Any = 0.99, error: Exception | None = None) -> None:
        self.value = value
        self.error = error
        self.calls: list[str] = []

    async def score(self, prompt: str, schema: dict[str, Any]) -> Any:
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return self.value


class StubExtractor:
    """StructuredExtractor returning a fixed raw answer, recording every call."""

    def __init__(self, response: str | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[list[dict[str, str]]] = []

    async def extract(self, messages: list[dict[str, str]], schema: dict[str, Any]) -> str | None:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.response


# ---------------------------------------------------------------------------
# 3. Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> Settings:
    """Settings with a known authorized sender and gateway token."""
    return Settings(
        telegram_bot_token="test-bot-token",
        authorized_sender_id=AUTHORIZED_SENDER,
        gateway_token=GATEWAY_TOKEN,
    )


@pytest.fixture()
async def session_factory():
    """
    Provide an async session factory bound to a fresh in-memory SQLite database.

    StaticPool keeps a single aiosqlite connection so every session sees the
    same database. The engine is disposed after the test finishes.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture()
def expense_store(session_factory) -> SqlExpenseStore:
    return SqlExpenseStore(session_factory)


@pytest.fixture()
def stub_scorer() -> StubScorer:
    return StubScorer()


@pytest.fixture()
def stub_extractor() -> StubExtractor:
    return StubExtractor(
        json.dumps({
            "amount": 150,
            "category": "food",
            "description": "dinner",
            "date": None,
            "time": None,
            "merchant": "Dominos",
        })
    )


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def pipeline(settings, stub_scorer, stub_extractor, expense_store, clock) -> ExpenseIntakePipeline:
    """Intake pipeline wired to the stubs and the in-memory store."""
    return ExpenseIntakePipeline(
        settings=settings,
        sanitizer=TextSanitizer(settings),
        gate=ConfidenceGate(settings, stub_scorer),
        extractor=ExpenseExtractor(stub_extractor),
        validator=RecordValidator(settings),
        store=expense_store,
        clock=clock,
    )
