"""
Tests for the bot command processor.

Tests cover:
- Command recognition (configured list, @botname suffix)
- /deletelastlog with and without logs
- Summaries per period, with and without a budget
- Budget commands and invalid numbers
- Store failures
"""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from spendlog.bot.commands import (
    NO_EXPENSES_IN_RANGE,
    CommandProcessor,
    parse_command,
    period_range,
)
from spendlog.config import Settings
from spendlog.intake.models import Expense
from spendlog.lib import errors
from spendlog.lib.exceptions import DatabaseError
from spendlog.services.expense_store import BudgetPeriod

# Saturday
NOW = datetime(2026, 10, 17, 19, 30)


def make_expense(amount: float, category: str, day: str = "2026-10-17") -> Expense:
    return Expense(
        user_id="424242",
        amount=amount,
        category=category,
        description="item",
        date=day,
        time="12:00",
        merchant="unknown",
        platform="telegram",
    )


@pytest.fixture
def processor(expense_store) -> CommandProcessor:
    return CommandProcessor(Settings(), expense_store, clock=lambda: NOW)


# =============================================================================
# Parsing
# =============================================================================


class TestRecognition:
    def test_configured_commands(self, processor: CommandProcessor) -> None:
        assert processor.is_command("/deletelastlog") is True
        assert processor.is_command("/setmydailybudget 500") is True
        assert processor.is_command("/summarybyweek@spendlog_bot") is True

    @pytest.mark.parametrize("text", ["/start", "Lunch 150 /deletelastlog", "", None])
    def test_not_commands(self, processor: CommandProcessor, text) -> None:
        assert processor.is_command(text) is False

    def test_parse_command(self) -> None:
        assert parse_command("/SetMyDailyBudget@bot  500 ") == ("/setmydailybudget", "500")


class TestPeriodRange:
    """Weeks start on Sunday."""

    def test_day(self) -> None:
        assert period_range(BudgetPeriod.DAILY, date(2026, 10, 17)) == (date(2026, 10, 17), date(2026, 10, 17))

    @pytest.mark.parametrize("today", [date(2026, 10, 11), date(2026, 10, 14), date(2026, 10, 17)])
    def test_week(self, today: date) -> None:
        assert period_range(BudgetPeriod.WEEKLY, today) == (date(2026, 10, 11), date(2026, 10, 17))

    def test_month(self) -> None:
        assert period_range(BudgetPeriod.MONTHLY, date(2026, 2, 14)) == (date(2026, 2, 1), date(2026, 2, 28))


# =============================================================================
# /deletelastlog
# =============================================================================


class TestDeleteLastLog:
    @pytest.mark.asyncio
    async def test_deletes_most_recent(self, processor: CommandProcessor, expense_store) -> None:
        keep = await expense_store.insert(make_expense(100, "food"))
        await expense_store.insert(make_expense(42.5, "transport"))

        result = await processor.handle("/deletelastlog")

        assert result.ok is True
        assert result.markdown is True
        assert "42\\.5" in result.reply
        assert "transport" in result.reply
        assert (await expense_store.query_most_recent()).id == keep

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self, processor: CommandProcessor) -> None:
        result = await processor.handle("/deletelastlog")

        assert result.ok is False
        assert result.reason == errors.NO_LOGS_FOUND
        assert result.reply
        assert result.to_response() == {"ok": False, "reason": errors.NO_LOGS_FOUND}


# =============================================================================
# Summaries
# =============================================================================


class TestSummaries:
    @pytest.mark.asyncio
    async def test_daily_totals_by_category(self, processor: CommandProcessor, expense_store) -> None:
        await expense_store.insert(make_expense(100, "food"))
        await expense_store.insert(make_expense(50, "food"))
        await expense_store.insert(make_expense(30, "transport"))
        await expense_store.insert(make_expense(999, "rent", day="2026-10-16"))

        result = await processor.handle("/summarybyday")

        assert result.ok is True
        assert "• food: 150" in result.reply
        assert "• transport: 30" in result.reply
        assert "rent" not in result.reply
        assert "Total: *180*" in result.reply

    @pytest.mark.asyncio
    async def test_weekly_includes_budget_remaining(self, processor: CommandProcessor, expense_store) -> None:
        await expense_store.insert(make_expense(200, "food", day="2026-10-11"))
        await expense_store.insert(make_expense(300, "shopping", day="2026-10-15"))
        await expense_store.insert(make_expense(1000, "rent", day="2026-10-10"))
        await expense_store.set_budget(BudgetPeriod.WEEKLY, 1000)

        result = await processor.handle("/summarybyweek")

        assert "Total: *500*" in result.reply
        assert "remaining: *500*" in result.reply

    @pytest.mark.asyncio
    async def test_monthly_over_budget(self, processor: CommandProcessor, expense_store) -> None:
        await expense_store.insert(make_expense(700, "food", day="2026-10-01"))
        await expense_store.set_budget(BudgetPeriod.MONTHLY, 500)

        result = await processor.handle("/summarybymonth")

        assert "over by: *200*" in result.reply

    @pytest.mark.asyncio
    async def test_empty_period(self, processor: CommandProcessor) -> None:
        result = await processor.handle("/summarybyday")
        assert result.ok is True
        assert result.reply == NO_EXPENSES_IN_RANGE


# =============================================================================
# Budgets
# =============================================================================


class TestBudgets:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("command", "period"),
        [
            ("/setmydailybudget", BudgetPeriod.DAILY),
            ("/setmyweeklybudget", BudgetPeriod.WEEKLY),
            ("/setmymonthlybudget", BudgetPeriod.MONTHLY),
        ],
    )
    async def test_sets_budget(self, processor: CommandProcessor, expense_store, command, period) -> None:
        result = await processor.handle(f"{command} 1,500")

        assert result.ok is True
        assert await expense_store.get_budget(period) == 1500

    @pytest.mark.asyncio
    @pytest.mark.parametrize("argument", ["", "abc", "-5", "0", "inf"])
    async def test_invalid_amount(self, processor: CommandProcessor, expense_store, argument: str) -> None:
        result = await processor.handle(f"/setmydailybudget {argument}")

        assert result.ok is False
        assert result.reason == errors.INVALID_BUDGET
        assert result.reply == "Enter a number, like, 100, 1000"
        assert await expense_store.get_budget(BudgetPeriod.DAILY) is None


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_error_is_internal(self) -> None:
        store = MagicMock()
        store.delete_most_recent = AsyncMock(side_effect=DatabaseError("locked"))
        processor = CommandProcessor(Settings(), store)

        result = await processor.handle("/deletelastlog")

        assert result.ok is False
        assert result.status_code == 500
        assert result.reply is None

    @pytest.mark.asyncio
    async def test_configured_but_unhandled_command(self, expense_store) -> None:
        processor = CommandProcessor(Settings(commands=("/deletelastlog", "/export")), expense_store)

        result = await processor.handle("/export")

        assert result.reason == errors.INVALID_COMMAND
