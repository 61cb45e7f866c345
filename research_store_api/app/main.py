"""
Main entrypoint for the Research Store API.

``create_app`` configures logging, CORS, the error handlers and the
versioned routers, and checks on startup that the required settings
are present before creating or migrating the database.  The module
level ``app`` is what uvicorn serves::

    uvicorn research_store_api.app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import get_database_path, init_db
from .core.errors import register_exception_handlers
from .core.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    missing = settings.missing_required()
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
    init_db()
    logger.info("Database ready at %s (PayPal %s mode)", get_database_path(), settings.paypal_mode)
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(app)
    app.include_router(v1_router, prefix="/api")
    return app


app = create_app()
