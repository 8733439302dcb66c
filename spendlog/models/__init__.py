"""
Models package for spendlog.

This package exports all SQLAlchemy models.

Usage:
    from spendlog.models import Base, ExpenseRecord, Budget
"""

from spendlog.models.base import Base
from spendlog.models.expense import Budget, ExpenseRecord

__all__ = [
    "Base",
    "ExpenseRecord",
    "Budget",
]
