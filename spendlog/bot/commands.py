"""
Bot command processor for spendlog.

Commands (first word of the message, see Settings.commands):
    /deletelastlog          delete the most recently logged expense
    /summarybyday           per-category totals for today
    /summarybyweek          per-category totals for this week (Sunday to Saturday)
    /summarybymonth         per-category totals for this month
    /setmydailybudget N     set the daily budget
    /setmyweeklybudget N    set the weekly budget
    /setmymonthlybudget N   set the monthly budget

Summaries are computed from the store; when a budget for the same period is
set, the remaining amount is shown as well.
"""

from __future__ import annotations

import calendar
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from spendlog.config import Settings
from spendlog.intake.pipeline import format_amount
from spendlog.intake.prompts import DATE_FORMAT
from spendlog.lib import errors
from spendlog.lib.exceptions import DatabaseError
from spendlog.lib.security import escape_markdown_v2
from spendlog.services.expense_store import BudgetPeriod, ExpenseStore

logger = logging.getLogger(__name__)

NO_EXPENSES_IN_RANGE = "No expenses found for the given date range"

_SUMMARY_COMMANDS: dict[str, BudgetPeriod] = {
    "/summarybyday": BudgetPeriod.DAILY,
    "/summarybyweek": BudgetPeriod.WEEKLY,
    "/summarybymonth": BudgetPeriod.MONTHLY,
}

_BUDGET_COMMANDS: dict[str, BudgetPeriod] = {
    "/setmydailybudget": BudgetPeriod.DAILY,
    "/setmyweeklybudget": BudgetPeriod.WEEKLY,
    "/setmymonthlybudget": BudgetPeriod.MONTHLY,
}

_PERIOD_LABELS: dict[BudgetPeriod, str] = {
    BudgetPeriod.DAILY: "today",
    BudgetPeriod.WEEKLY: "this week",
    BudgetPeriod.MONTHLY: "this month",
}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one bot command."""

    ok: bool
    reply: str | None = None
    markdown: bool = False
    reason: str | None = None
    status_code: int = 200

    def to_response(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True}
        return errors.build_error_response(self.reason or errors.INTERNAL_ERROR)


def period_range(period: BudgetPeriod, today: date) -> tuple[date, date]:
    """
    First and last day of the period containing today.

    Weeks run Sunday to Saturday.
    """
    if period == BudgetPeriod.DAILY:
        return today, today
    if period == BudgetPeriod.WEEKLY:
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def parse_command(text: str) -> tuple[str, str]:
    """Split "/cmd@botname arg ..." into ("/cmd", "arg ...")."""
    head, _, rest = text.strip().partition(" ")
    command = head.split("@", 1)[0].lower()
    return command, rest.strip()


class CommandProcessor:
    """Runs the bot commands against the expense store."""

    def __init__(
        self,
        settings: Settings,
        store: ExpenseStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._commands = frozenset(c.lower() for c in settings.commands)
        self._store = store
        self._clock = clock or datetime.now

    def is_command(self, text: str | None) -> bool:
        """True if the first word of text is a configured command."""
        if not text or not text.strip().startswith("/"):
            return False
        return parse_command(text)[0] in self._commands

    async def handle(self, text: str) -> CommandResult:
        """
        Run one command.

        Args:
            text: Full message text, starting with the command

        Returns:
            CommandResult with the reply to send back, if any
        """
        command, argument = parse_command(text)
        try:
            if command == "/deletelastlog":
                return await self._delete_last_log()
            if command in _SUMMARY_COMMANDS:
                return await self._summary(_SUMMARY_COMMANDS[command])
            if command in _BUDGET_COMMANDS:
                return await self._set_budget(_BUDGET_COMMANDS[command], argument)
        except DatabaseError as e:
            logger.error("Command %s failed: %s", command, e)
            return CommandResult(ok=False, reason=errors.INTERNAL_ERROR, status_code=500)

        logger.info("Unknown command: %s", command)
        return CommandResult(
            ok=False,
            reply=errors.get_user_message(errors.INVALID_COMMAND),
            reason=errors.INVALID_COMMAND,
        )

    # =========================================================================
    # Commands
    # =========================================================================

    async def _delete_last_log(self) -> CommandResult:
        deleted = await self._store.delete_most_recent()
        if deleted is None:
            return CommandResult(
                ok=False,
                reply=errors.get_user_message(errors.NO_LOGS_FOUND),
                reason=errors.NO_LOGS_FOUND,
            )

        expense = deleted.expense
        logger.info("Deleted last log id=%s", deleted.id)
        reply = (
            f"🗑️ Deleted *{escape_markdown_v2(format_amount(expense.amount))}* "
            f"\\({escape_markdown_v2(expense.category)}\\) "
            f"for _{escape_markdown_v2(expense.description)}_ "
            f"on {escape_markdown_v2(expense.date)}\\."
        )
        return CommandResult(ok=True, reply=reply, markdown=True)

    async def _summary(self, period: BudgetPeriod) -> CommandResult:
        start, end = period_range(period, self._clock().date())
        records = await self._store.list_between(start.strftime(DATE_FORMAT), end.strftime(DATE_FORMAT))
        budget = await self._store.get_budget(period)

        if not records:
            return CommandResult(ok=True, reply=NO_EXPENSES_IN_RANGE)

        totals: dict[str, float] = {}
        for record in records:
            category = record.expense.category
            totals[category] = totals.get(category, 0.0) + record.expense.amount
        total = sum(totals.values())

        lines = [
            f"*Spent {escape_markdown_v2(_PERIOD_LABELS[period])}* "
            f"\\({escape_markdown_v2(start.strftime(DATE_FORMAT))} to "
            f"{escape_markdown_v2(end.strftime(DATE_FORMAT))}\\)",
        ]
        for category, amount in sorted(totals.items(), key=lambda item: (-item[1], item[0])):
            lines.append(f"• {escape_markdown_v2(category)}: {escape_markdown_v2(format_amount(amount))}")
        lines.append(f"Total: *{escape_markdown_v2(format_amount(total))}*")

        if budget is not None:
            remaining = budget - total
            if remaining >= 0:
                lines.append(
                    f"Budget: {escape_markdown_v2(format_amount(budget))}, "
                    f"remaining: *{escape_markdown_v2(format_amount(remaining))}*"
                )
            else:
                lines.append(
                    f"Budget: {escape_markdown_v2(format_amount(budget))}, "
                    f"over by: *{escape_markdown_v2(format_amount(-remaining))}* ⚠️"
                )

        return CommandResult(ok=True, reply="\n".join(lines), markdown=True)

    async def _set_budget(self, period: BudgetPeriod, argument: str) -> CommandResult:
        amount = _parse_budget(argument)
        if amount is None:
            return CommandResult(
                ok=False,
                reply=errors.get_user_message(errors.INVALID_BUDGET),
                reason=errors.INVALID_BUDGET,
            )

        await self._store.set_budget(period, amount)
        return CommandResult(ok=True, reply=f"{period.value.capitalize()} budget saved: {format_amount(amount)}")


def _parse_budget(argument: str) -> float | None:
    token = argument.split()[0] if argument.split() else ""
    try:
        amount = float(token.replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


__all__ = [
    "CommandProcessor",
    "CommandResult",
    "NO_EXPENSES_IN_RANGE",
    "parse_command",
    "period_range",
]
