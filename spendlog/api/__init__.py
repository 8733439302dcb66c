"""
HTTP surface for spendlog.

Provides:
- FastAPI application receiving the gateway's forwarded Telegram updates on POST /
- Root-level health check for the load balancer
- Global exception handler (unhandled faults answer 500 without detail)

Usage:
    uvicorn spendlog.api:create_app --factory
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from spendlog import __version__
from spendlog.api.schemas import HealthCheckResponse
from spendlog.bot.commands import CommandProcessor
from spendlog.bot.transport import TelegramMessageSender
from spendlog.bot.webhook import TelegramWebhookHandler
from spendlog.config import Settings, validate_secrets
from spendlog.intake.confidence import ConfidenceGate
from spendlog.intake.extractor import ExpenseExtractor
from spendlog.intake.pipeline import ExpenseIntakePipeline
from spendlog.intake.sanitizer import TextSanitizer
from spendlog.intake.validator import RecordValidator
from spendlog.lib import errors
from spendlog.services.expense_store import ExpenseStore, SqlExpenseStore
from spendlog.services.inference import GeminiTextScorer, WorkersAIExtractor

logger = logging.getLogger(__name__)


def build_webhook_handler(settings: Settings, store: ExpenseStore) -> TelegramWebhookHandler:
    """Wire the production collaborators for one process."""
    pipeline = ExpenseIntakePipeline(
        settings=settings,
        sanitizer=TextSanitizer(settings),
        gate=ConfidenceGate(settings, GeminiTextScorer.from_settings(settings)),
        extractor=ExpenseExtractor(WorkersAIExtractor.from_settings(settings)),
        validator=RecordValidator(settings),
        store=store,
    )
    return TelegramWebhookHandler(
        settings=settings,
        pipeline=pipeline,
        commands=CommandProcessor(settings, store),
        sender=TelegramMessageSender(settings.telegram_bot_token),
    )


def create_app(
    settings: Settings | None = None,
    handler: TelegramWebhookHandler | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Runtime settings (defaults to Settings.from_env())
        handler: Prebuilt webhook handler (defaults to the production wiring)

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or Settings.from_env()
    store: SqlExpenseStore | None = None
    if handler is None:
        validate_secrets()
        store = SqlExpenseStore.from_url(settings.database_url)
        handler = build_webhook_handler(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if store is not None:
            await store.create_tables()
        yield
        if store is not None:
            await store.dispose()

    app = FastAPI(
        lifespan=lifespan,
        title="spendlog",
        description="Single-user expense logging bot",
        version=__version__,
        docs_url="/docs" if settings.dev_mode else None,
        redoc_url=None,
    )

    # -------------------------------------------------------------------------
    # Global exception handler
    # -------------------------------------------------------------------------
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content=errors.build_error_response(errors.INTERNAL_ERROR),
        )

    # -------------------------------------------------------------------------
    # Webhook
    # -------------------------------------------------------------------------
    @app.post("/")
    async def telegram_webhook(request: Request) -> JSONResponse:
        """Forwarded Telegram update from the gateway."""
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(
                status_code=400,
                content=errors.build_error_response(errors.REQUEST_WRONG_SOURCE),
            )

        status_code, body = await handler.handle(request.headers, payload)
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/health", response_model=HealthCheckResponse)
    async def root_health_check() -> HealthCheckResponse:
        """Root health check for the load balancer."""
        return HealthCheckResponse(status="ok", version=__version__, timestamp=datetime.now(UTC))

    return app


__all__ = ["create_app", "build_webhook_handler"]
