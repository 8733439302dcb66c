"""
Services for spendlog.

External capabilities the intake pipeline and bot commands depend on.

Services:
    - TextScorer / GeminiTextScorer: sentiment scoring
    - StructuredExtractor / WorkersAIExtractor: structured expense extraction
    - ExpenseStore / SqlExpenseStore: expense and budget persistence
"""

from .inference import (
    GeminiTextScorer,
    StructuredExtractor,
    TextScorer,
    WorkersAIExtractor,
)
from .expense_store import (
    BudgetPeriod,
    ExpenseStore,
    SqlExpenseStore,
    StoredExpense,
)

__all__ = [
    # Inference
    "TextScorer",
    "StructuredExtractor",
    "GeminiTextScorer",
    "WorkersAIExtractor",
    # Storage
    "BudgetPeriod",
    "ExpenseStore",
    "SqlExpenseStore",
    "StoredExpense",
]
