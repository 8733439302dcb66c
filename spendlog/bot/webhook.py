"""
Telegram Webhook Handler for spendlog.

Entry point for every update the gateway forwards. Verifies the request,
then routes the message either to the command processor or to the expense
intake pipeline, and delivers the resulting reply to the chat.

Flow:
    1. x-custom-request-sent-time present and younger than the staleness window (else 400)
    2. x-custom-client-id matches the gateway token, constant-time (missing 400, wrong 200)
    3. Update has a chat id (else 400) and text (else 400)
    4. Sender id present (else 200) and equal to the authorized sender,
       constant-time; anyone else gets a detail-free reply (200)
    5. Configured bot command -> CommandProcessor
    6. Anything else -> ExpenseIntakePipeline
    7. Deliver the user-facing reply, if any

Mismatched tokens and senders answer 200 so the gateway does not redeliver.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from spendlog.api.schemas import TelegramUpdate
from spendlog.bot.commands import CommandProcessor
from spendlog.bot.transport import MessageSender
from spendlog.config import Settings
from spendlog.intake.models import RawMessage
from spendlog.intake.pipeline import ExpenseIntakePipeline
from spendlog.lib import errors
from spendlog.lib.exceptions import ExternalServiceError, SecurityError
from spendlog.lib.security import constant_time_equals, hash_uid, is_request_fresh

logger = logging.getLogger(__name__)

SENT_TIME_HEADER = "x-custom-request-sent-time"
CLIENT_ID_HEADER = "x-custom-client-id"


class TelegramWebhookHandler:
    """
    Verifies gateway requests and routes Telegram messages.

    All collaborators are injected, so the handler holds no state of its own
    between requests.
    """

    def __init__(
        self,
        settings: Settings,
        pipeline: ExpenseIntakePipeline,
        commands: CommandProcessor,
        sender: MessageSender,
    ) -> None:
        self._settings = settings
        self._pipeline = pipeline
        self._commands = commands
        self._sender = sender

    async def handle(self, headers: Mapping[str, str], payload: Any) -> tuple[int, dict[str, Any]]:
        """
        Handle one forwarded update.

        Args:
            headers: Request headers (case-insensitive mapping or lowercase keys)
            payload: Decoded JSON body

        Returns:
            (HTTP status, response body)
        """
        chat_id: str | None = None
        try:
            self._verify_headers(headers)
            update = self._parse(payload)

            message = update.message
            if message is None or message.chat is None:
                raise SecurityError(errors.REQUEST_WRONG_SOURCE)
            chat_id = str(message.chat.id)

            if not message.text:
                raise SecurityError(errors.REQUEST_NO_TEXT)

            if message.from_user is None:
                raise SecurityError(errors.UNKNOWN_SENDER, status_code=200)
            sender_id = str(message.from_user.id)

            if not constant_time_equals(sender_id, self._settings.authorized_sender_id):
                logger.warning("Message from unauthorized sender %s", hash_uid(sender_id))
                raise SecurityError(errors.UNAUTHORIZED, status_code=200, notify_user=True)

        except SecurityError as e:
            logger.warning("Webhook request rejected: %s", e.code)
            if e.notify_user and chat_id is not None:
                await self._deliver(chat_id, errors.get_user_message(e.code))
            return e.status_code, errors.build_error_response(e.code)

        text = message.text
        if self._commands.is_command(text):
            result = await self._commands.handle(text)
            await self._deliver(chat_id, result.reply, markdown=result.markdown)
            return result.status_code, result.to_response()

        outcome = await self._pipeline.process(RawMessage(text=text, sender_id=sender_id, chat_id=chat_id))
        if outcome.ok:
            await self._deliver(chat_id, outcome.confirmation, markdown=True)
        else:
            await self._deliver(chat_id, outcome.user_message)
        return outcome.status_code, outcome.to_response()

    def _verify_headers(self, headers: Mapping[str, str]) -> None:
        sent_time = headers.get(SENT_TIME_HEADER)
        if not sent_time:
            raise SecurityError(errors.REQUEST_MISSING_SENT_TIME)
        if not is_request_fresh(sent_time, self._settings.request_max_age_seconds):
            raise SecurityError(errors.REQUEST_TOO_OLD)

        client_id = headers.get(CLIENT_ID_HEADER)
        if not client_id:
            raise SecurityError(errors.REQUEST_MISSING_CLIENT_ID)
        if not constant_time_equals(client_id, self._settings.gateway_token):
            raise SecurityError(errors.UNAUTHORIZED, status_code=200)

    @staticmethod
    def _parse(payload: Any) -> TelegramUpdate:
        try:
            return TelegramUpdate.model_validate(payload)
        except PydanticValidationError as e:
            raise SecurityError(errors.REQUEST_WRONG_SOURCE) from e

    async def _deliver(self, chat_id: str, text: str | None, markdown: bool = False) -> None:
        if not text:
            return
        try:
            await self._sender.send(chat_id, text, markdown=markdown)
        except ExternalServiceError as e:
            logger.warning("Reply delivery failed for chat %s: %s", hash_uid(chat_id), e)


__all__ = [
    "TelegramWebhookHandler",
    "SENT_TIME_HEADER",
    "CLIENT_ID_HEADER",
]
