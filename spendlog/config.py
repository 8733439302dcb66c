"""
Runtime configuration for spendlog.

All deployment parameters live in one frozen Settings object, built once at
startup from the environment and passed to every component that needs it.
Nothing downstream reads os.environ directly.

Environment variables (defaults in brackets):
    TELEGRAM_BOT_TOKEN               bot token for outbound messages
    TELEGRAM_VALID_FROM_ID           the single authorized sender id
    GATEWAY_SERVICE_CALL_TOKEN       shared token the upstream gateway sends
    REQUEST_MAX_AGE_SECONDS          [300] staleness window for gateway requests
    SENTIMENT_CONFIDENT_THRESHOLD    [0.95] minimum sentiment score
    EXPENSE_CATEGORIES               comma separated allow-list
    EXPENSE_CATEGORY_POLICY          [closed] "closed" or "free"
    EXPENSE_DEFAULT_CATEGORY         [misc]
    SANITIZER_MIN_LENGTH             [10]
    SANITIZER_MAX_LENGTH             [300]
    SANITIZER_MAX_WORDS              [20]
    SANITIZER_ALLOWED_PUNCTUATION    [.,!?-:+]
    EXPENSE_PLATFORM                 [telegram]
    TELEGRAM_MENU_OPTIONS_COMMAND    comma separated bot commands
    GOOGLE_GEMINI_API_KEY            sentiment scoring service key
    SENTIMENT_MODEL                  [gemini-2.5-flash-lite]
    CLOUDFLARE_ACCOUNT_ID            extraction service account
    CLOUDFLARE_API_TOKEN             extraction service token
    EXTRACTION_MODEL                 [@cf/meta/llama-3.2-1b-instruct]
    INFERENCE_TIMEOUT_SECONDS        [20]
    DATABASE_URL                     [sqlite+aiosqlite:///spendlog.db]
    SPENDLOG_DEV_MODE                [0] "1" relaxes secret validation
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from spendlog.lib.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class CategoryPolicy(StrEnum):
    """How the record validator treats categories outside the allow-list."""

    CLOSED = "closed"  # unknown categories fall back to the default category
    FREE = "free"      # any non-empty lowercase string is kept


DEFAULT_CATEGORIES: tuple[str, ...] = (
    "food",
    "grocery",
    "transport",
    "shopping",
    "bills",
    "rent",
    "health",
    "entertainment",
    "travel",
    "education",
    "subscriptions",
    "misc",
)

DEFAULT_COMMANDS: tuple[str, ...] = (
    "/deletelastlog",
    "/summarybyday",
    "/summarybyweek",
    "/summarybymonth",
    "/setmydailybudget",
    "/setmyweeklybudget",
    "/setmymonthlybudget",
)

# Secrets that must be present outside dev mode
_REQUIRED_SECRETS: tuple[str, ...] = (
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_VALID_FROM_ID",
    "GATEWAY_SERVICE_CALL_TOKEN",
    "GOOGLE_GEMINI_API_KEY",
    "CLOUDFLARE_ACCOUNT_ID",
    "CLOUDFLARE_API_TOKEN",
)


@dataclass(frozen=True)
class Settings:
    """Deployment configuration, injected at startup."""

    # Identity and transport
    telegram_bot_token: str = ""
    authorized_sender_id: str = ""
    gateway_token: str = ""
    request_max_age_seconds: float = 300.0
    platform: str = "telegram"
    commands: tuple[str, ...] = DEFAULT_COMMANDS

    # Sanitizer policy
    min_length: int = 10
    max_length: int = 300
    max_words: int = 20
    allowed_punctuation: str = ".,!?-:+"
    allowed_currency_symbols: str = "₹$€£¥"

    # Confidence gate
    sentiment_threshold: float = 0.95

    # Record validator
    categories: tuple[str, ...] = DEFAULT_CATEGORIES
    category_policy: CategoryPolicy = CategoryPolicy.CLOSED
    default_category: str = "misc"
    default_description: str = "expense"
    default_merchant: str = "unknown"
    max_amount: float = 999_999
    max_description_length: int = 355

    # Inference services
    gemini_api_key: str = ""
    sentiment_model: str = "gemini-2.5-flash-lite"
    cloudflare_account_id: str = ""
    cloudflare_api_token: str = ""
    extraction_model: str = "@cf/meta/llama-3.2-1b-instruct"
    inference_timeout_seconds: float = 20.0

    # Storage
    database_url: str = "sqlite+aiosqlite:///spendlog.db"

    dev_mode: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build Settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If a numeric value or the category policy is malformed
        """
        env = os.environ if environ is None else environ

        categories = _split_csv(env.get("EXPENSE_CATEGORIES")) or DEFAULT_CATEGORIES
        commands = _split_csv(env.get("TELEGRAM_MENU_OPTIONS_COMMAND")) or DEFAULT_COMMANDS

        policy_raw = env.get("EXPENSE_CATEGORY_POLICY", CategoryPolicy.CLOSED.value).strip().lower()
        try:
            policy = CategoryPolicy(policy_raw)
        except ValueError as e:
            raise ConfigurationError(
                f"EXPENSE_CATEGORY_POLICY must be 'closed' or 'free', got {policy_raw!r}"
            ) from e

        threshold = _float(env, "SENTIMENT_CONFIDENT_THRESHOLD", 0.95)
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationError("SENTIMENT_CONFIDENT_THRESHOLD must be between 0 and 1")

        return cls(
            telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN", ""),
            authorized_sender_id=env.get("TELEGRAM_VALID_FROM_ID", ""),
            gateway_token=env.get("GATEWAY_SERVICE_CALL_TOKEN", ""),
            request_max_age_seconds=_float(env, "REQUEST_MAX_AGE_SECONDS", 300.0),
            platform=env.get("EXPENSE_PLATFORM", "telegram"),
            commands=commands,
            min_length=_int(env, "SANITIZER_MIN_LENGTH", 10),
            max_length=_int(env, "SANITIZER_MAX_LENGTH", 300),
            max_words=_int(env, "SANITIZER_MAX_WORDS", 20),
            allowed_punctuation=env.get("SANITIZER_ALLOWED_PUNCTUATION", ".,!?-:+"),
            sentiment_threshold=threshold,
            categories=tuple(c.lower() for c in categories),
            category_policy=policy,
            default_category=env.get("EXPENSE_DEFAULT_CATEGORY", "misc").strip().lower() or "misc",
            gemini_api_key=env.get("GOOGLE_GEMINI_API_KEY", ""),
            sentiment_model=env.get("SENTIMENT_MODEL", "gemini-2.5-flash-lite"),
            cloudflare_account_id=env.get("CLOUDFLARE_ACCOUNT_ID", ""),
            cloudflare_api_token=env.get("CLOUDFLARE_API_TOKEN", ""),
            extraction_model=env.get("EXTRACTION_MODEL", "@cf/meta/llama-3.2-1b-instruct"),
            inference_timeout_seconds=_float(env, "INFERENCE_TIMEOUT_SECONDS", 20.0),
            database_url=env.get("DATABASE_URL", "sqlite+aiosqlite:///spendlog.db"),
            dev_mode=env.get("SPENDLOG_DEV_MODE") == "1",
        )


def validate_secrets(environ: Mapping[str, str] | None = None) -> None:
    """
    Validate that required secrets are set at startup (fail-fast).

    In dev mode (SPENDLOG_DEV_MODE=1) missing secrets are only warned about.

    Raises:
        ConfigurationError: If any required secret is missing outside dev mode
    """
    env = os.environ if environ is None else environ
    missing = [name for name in _REQUIRED_SECRETS if not env.get(name)]
    if not missing:
        return

    if env.get("SPENDLOG_DEV_MODE") == "1":
        logger.warning(
            "Missing secrets in dev mode: %s. DO NOT USE IN PRODUCTION.",
            ", ".join(missing),
        )
        return

    raise ConfigurationError(f"Missing required secrets: {', '.join(missing)}")


def _split_csv(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


__all__ = [
    "CategoryPolicy",
    "DEFAULT_CATEGORIES",
    "DEFAULT_COMMANDS",
    "Settings",
    "validate_secrets",
]
