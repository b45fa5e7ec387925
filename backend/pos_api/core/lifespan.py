"""
Application lifespan handler.
Manages startup and shutdown events for the FastAPI application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from pos_api.models import Base
from pos_api.services.events.outbox_processor import (
    start_outbox_processor,
    stop_outbox_processor,
)
from pos_api.services.integrations.sales_sync import get_sales_sync_client
from shared.config.logging import pos_api_logger as logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import engine
from shared.infrastructure.events import close_redis_pool


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    setup_logging()

    # Validate configuration before accepting orders
    config_errors = settings.validate_production_secrets()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(config_errors)}. "
                "Server will not start with unsafe configuration."
            )
        logger.warning("Running with development defaults")

    logger.info("Starting POS API", port=settings.api_port, env=settings.environment)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    await start_outbox_processor()

    yield

    logger.info("Shutting down POS API")

    await stop_outbox_processor()

    await get_sales_sync_client().close()
    logger.info("Sales sync HTTP client closed")

    await close_redis_pool()
    logger.info("Redis connection pool closed")
