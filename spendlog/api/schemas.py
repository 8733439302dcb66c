"""
Pydantic Schemas for the spendlog webhook API.

Only the parts of a Telegram update the bot reads are modelled; every other
field is ignored.

Reference: https://core.telegram.org/bots/api#update
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Telegram Update
# =============================================================================


class TelegramUser(BaseModel):
    """Sender of a message."""

    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool = False
    first_name: str | None = None
    username: str | None = None


class TelegramChat(BaseModel):
    """Chat a message was sent in."""

    model_config = ConfigDict(extra="ignore")

    id: int
    type: str | None = None


class TelegramMessage(BaseModel):
    """Incoming message. Telegram sends the sender as "from"."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int | None = None
    from_user: TelegramUser | None = Field(None, alias="from")
    chat: TelegramChat | None = None
    date: int | None = None
    text: str | None = None


class TelegramUpdate(BaseModel):
    """Webhook payload forwarded by the gateway."""

    model_config = ConfigDict(extra="ignore")

    update_id: int | None = None
    message: TelegramMessage | None = None


# =============================================================================
# Responses
# =============================================================================


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: datetime


__all__ = [
    "TelegramUser",
    "TelegramChat",
    "TelegramMessage",
    "TelegramUpdate",
    "HealthCheckResponse",
]
