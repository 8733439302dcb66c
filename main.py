"""
spendlog -- Application Entry Point.

Starts the FastAPI webhook server via uvicorn.

Usage:
    python main.py              # Development (reload enabled with SPENDLOG_DEV_MODE=1)
    uvicorn main:app --host 0.0.0.0 --port 8000  # Production
"""

from __future__ import annotations

import os

import uvicorn

from spendlog.api import create_app
from spendlog.lib.logging import setup_logging

setup_logging()
app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("SPENDLOG_PORT", "8000"))
    host = os.getenv("SPENDLOG_HOST", "0.0.0.0")
    reload = os.getenv("SPENDLOG_DEV_MODE", "0") == "1"

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )
