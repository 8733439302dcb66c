"""
Expense and Budget models for spendlog.

Data Classification: FINANCIAL (amounts and merchants of a single user)

The expenses table is append-only from the intake pipeline: one insert per
accepted message. Deletes only happen through the /deletelastlog command.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text

from spendlog.models.base import Base


class ExpenseRecord(Base):
    """
    One persisted expense.

    Attributes:
        id: Primary key
        user_id: Authorized sender id (stored as text)
        amount: Amount spent, 0 < amount <= 999999
        category: Lowercase category name
        description: Short description of the purchase
        date: YYYY-MM-DD
        time: HH:MM, 24h
        merchant: Lowercase merchant name, "unknown" when not mentioned
        platform: Transport the message arrived on
        created_at: Insert timestamp, orders /deletelastlog
    """

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    category = Column(String(64), nullable=False)
    description = Column(Text, nullable=False)
    date = Column(String(10), nullable=False)
    time = Column(String(5), nullable=False)
    merchant = Column(String(255), nullable=False, default="unknown")
    platform = Column(String(32), nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_expense_user_date", "user_id", "date"),
        Index("idx_expense_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ExpenseRecord(id={self.id}, amount={self.amount}, category={self.category})>"


class Budget(Base):
    """
    Budget per period, set with /setmydailybudget and friends.

    Attributes:
        frequency: "daily" | "weekly" | "monthly"
        amount: Budget amount for one period
        updated_at: Last update timestamp
    """

    __tablename__ = "budgets"

    frequency = Column(String(16), primary_key=True)
    amount = Column(Float, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Budget(frequency={self.frequency}, amount={self.amount})>"


__all__ = ["ExpenseRecord", "Budget"]
