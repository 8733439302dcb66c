"""
Expense Store for spendlog.

Persistence boundary for validated expenses and per-period budgets. The
intake pipeline only ever calls insert(); the remaining operations back the
bot commands (/deletelastlog, summaries, budgets).

All operations are coroutines over SQLAlchemy's AsyncSession, so a slow
disk never stalls the webhook's event loop.

Dates are stored as fixed-width YYYY-MM-DD strings, so date ranges are plain
string comparisons.

Usage:
    store = SqlExpenseStore.from_url(settings.database_url)
    await store.create_tables()
    record_id = await store.insert(expense)
    latest = await store.query_most_recent()
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from spendlog.intake.models import Expense
from spendlog.lib.exceptions import DatabaseError
from spendlog.lib.security import hash_uid
from spendlog.models import Base, Budget, ExpenseRecord

logger = structlog.get_logger(__name__)

# Sync driver URLs map to their asyncio drivers
_ASYNC_DRIVERS: dict[str, str] = {
    "sqlite": "sqlite+aiosqlite",
}


class BudgetPeriod(StrEnum):
    """Budget and summary periods."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class StoredExpense:
    """An expense as read back from the store."""

    id: int
    expense: Expense
    created_at: datetime | None = None


@runtime_checkable
class ExpenseStore(Protocol):
    """Storage capability used by the pipeline and the bot commands."""

    async def insert(self, expense: Expense) -> int: ...

    async def query_most_recent(self) -> StoredExpense | None: ...

    async def delete(self, record_id: int) -> bool: ...

    async def delete_most_recent(self) -> StoredExpense | None: ...

    async def list_between(self, start_date: str, end_date: str) -> list[StoredExpense]: ...

    async def get_budget(self, period: BudgetPeriod) -> float | None: ...

    async def set_budget(self, period: BudgetPeriod, amount: float) -> None: ...


def to_async_url(database_url: str) -> str:
    """Rewrite "sqlite:///x.db" style URLs to their asyncio driver."""
    scheme, sep, rest = database_url.partition("://")
    if "+" in scheme or not sep:
        return database_url
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}://{rest}"


class SqlExpenseStore:
    """ExpenseStore over SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> SqlExpenseStore:
        """
        Create the async engine and wrap it in a store.

        No connection is opened until the first operation; call
        create_tables() once at startup.
        """
        url = to_async_url(database_url)
        kwargs: dict[str, Any] = {}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.endswith("://") or url.endswith(":memory:"):
                kwargs["poolclass"] = StaticPool
        try:
            engine = create_async_engine(url, **kwargs)
        except (SQLAlchemyError, ImportError) as e:
            raise DatabaseError(f"Could not open expense store: {e}") from e
        return cls(async_sessionmaker(engine, expire_on_commit=False), engine=engine)

    async def create_tables(self) -> None:
        """Create the expenses and budgets tables if they do not exist."""
        if self._engine is None:
            return
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Could not create expense tables: {e}") from e

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    # =========================================================================
    # Expenses
    # =========================================================================

    async def insert(self, expense: Expense) -> int:
        """
        Persist one validated expense.

        Returns:
            The new record id

        Raises:
            DatabaseError: If the insert failed; nothing was written
        """
        record = ExpenseRecord(**expense.to_dict())
        async with self._session_factory() as session:
            try:
                session.add(record)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Expense insert failed: {e}") from e
            record_id = record.id

        logger.info("expense_inserted", record_id=record_id, user=hash_uid(expense.user_id))
        return record_id

    async def query_most_recent(self) -> StoredExpense | None:
        """Return the most recently created expense, or None if there is none."""
        async with self._session_factory() as session:
            try:
                record = await self._most_recent(session)
            except SQLAlchemyError as e:
                raise DatabaseError(f"Expense query failed: {e}") from e
            return _to_stored(record) if record is not None else None

    async def delete(self, record_id: int) -> bool:
        """Delete one expense by id. Returns False if it did not exist."""
        async with self._session_factory() as session:
            try:
                record = await session.get(ExpenseRecord, record_id)
                if record is None:
                    return False
                await session.delete(record)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Expense delete failed: {e}") from e

        logger.info("expense_deleted", record_id=record_id)
        return True

    async def delete_most_recent(self) -> StoredExpense | None:
        """Delete and return the most recently created expense, in one transaction."""
        async with self._session_factory() as session:
            try:
                record = await self._most_recent(session)
                if record is None:
                    return None
                stored = _to_stored(record)
                await session.delete(record)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Expense delete failed: {e}") from e

        logger.info("expense_deleted", record_id=stored.id)
        return stored

    async def list_between(self, start_date: str, end_date: str) -> list[StoredExpense]:
        """List expenses dated from start_date to end_date inclusive (YYYY-MM-DD)."""
        stmt = (
            select(ExpenseRecord)
            .where(ExpenseRecord.date >= start_date, ExpenseRecord.date <= end_date)
            .order_by(ExpenseRecord.date, ExpenseRecord.time, ExpenseRecord.id)
        )
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as e:
                raise DatabaseError(f"Expense query failed: {e}") from e
            return [_to_stored(record) for record in result.scalars().all()]

    @staticmethod
    async def _most_recent(session: AsyncSession) -> ExpenseRecord | None:
        result = await session.execute(
            select(ExpenseRecord)
            .order_by(ExpenseRecord.created_at.desc(), ExpenseRecord.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # Budgets
    # =========================================================================

    async def get_budget(self, period: BudgetPeriod) -> float | None:
        async with self._session_factory() as session:
            try:
                budget = await session.get(Budget, BudgetPeriod(period).value)
            except SQLAlchemyError as e:
                raise DatabaseError(f"Budget query failed: {e}") from e
            return budget.amount if budget is not None else None

    async def set_budget(self, period: BudgetPeriod, amount: float) -> None:
        """Create or replace the budget for one period."""
        key = BudgetPeriod(period).value
        async with self._session_factory() as session:
            try:
                budget = await session.get(Budget, key)
                if budget is None:
                    session.add(Budget(frequency=key, amount=amount))
                else:
                    budget.amount = amount
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Budget update failed: {e}") from e

        logger.info("budget_set", period=key, amount=amount)


def _to_stored(record: ExpenseRecord) -> StoredExpense:
    return StoredExpense(
        id=record.id,
        expense=Expense(
            user_id=record.user_id,
            amount=record.amount,
            category=record.category,
            description=record.description,
            date=record.date,
            time=record.time,
            merchant=record.merchant,
            platform=record.platform,
        ),
        created_at=record.created_at,
    )


__all__ = [
    "BudgetPeriod",
    "StoredExpense",
    "ExpenseStore",
    "SqlExpenseStore",
    "to_async_url",
]
