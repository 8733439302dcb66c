"""
Outbound message transport for spendlog.

The intake pipeline and the bot commands only produce text; delivering it is
the transport's job. MessageSender is the seam, TelegramMessageSender the
production implementation over python-telegram-bot.

Usage:
    sender = TelegramMessageSender(settings.telegram_bot_token)
    await sender.send(chat_id, outcome.confirmation, markdown=True)
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from spendlog.lib.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@runtime_checkable
class MessageSender(Protocol):
    """Delivers one text message to a chat."""

    async def send(self, chat_id: str, text: str, markdown: bool = False) -> None: ...


class TelegramMessageSender:
    """MessageSender backed by the Telegram Bot API."""

    def __init__(self, token: str, bot: Bot | None = None) -> None:
        self._bot = bot or Bot(token=token)

    async def send(self, chat_id: str, text: str, markdown: bool = False) -> None:
        """
        Send text to a chat.

        Args:
            chat_id: Target chat
            text: Message body; must already be MarkdownV2-escaped when markdown=True
            markdown: Send with parse_mode MarkdownV2

        Raises:
            ExternalServiceError: If Telegram rejected the message or was unreachable
        """
        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN_V2 if markdown else None,
            )
        except TelegramError as e:
            raise ExternalServiceError(f"Telegram send_message failed: {e}") from e


__all__ = ["MessageSender", "TelegramMessageSender"]
