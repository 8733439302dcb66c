"""
Bot package for spendlog.

This package contains the Telegram bot components:
- webhook.py: request verification and routing of forwarded updates
- commands.py: /deletelastlog, summaries and budgets
- transport.py: outbound messages via python-telegram-bot

Usage:
    from spendlog.bot import TelegramWebhookHandler, CommandProcessor
"""

from spendlog.bot.transport import MessageSender, TelegramMessageSender
from spendlog.bot.commands import CommandProcessor, CommandResult
from spendlog.bot.webhook import TelegramWebhookHandler

__all__ = [
    # Transport
    "MessageSender",
    "TelegramMessageSender",
    # Commands
    "CommandProcessor",
    "CommandResult",
    # Webhook
    "TelegramWebhookHandler",
]
