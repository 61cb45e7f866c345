"""Entry point for the Research Store API.

Serves ``research_store_api.app.main:app`` with Uvicorn.  It is meant to
be executed from the project root, for example under Docker, where you
only specify a single Python file to run.

Configuration (JWT_SECRET, PAYPAL_CLIENT_ID, PAYPAL_SECRET_KEY, DATABASE_URL,
HOST, PORT and so on) is read from the environment.

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from research_store_api.app.core.config import settings
from research_store_api.app.main import app


async def main() -> None:
    """Start the API server on ``settings.host`` and ``settings.port``."""
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Server stopped")
