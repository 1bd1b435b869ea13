"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fleetplan.api.v1 import health, recurring_orders
from fleetplan.config import settings
from fleetplan.db import dispose_engine
from fleetplan.logging import setup_logging

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(
        "Starting Fleetplan API",
        debug=settings.debug,
        timezone=settings.timezone,
        cursor_policy=settings.recurring_cursor_policy.value,
    )

    yield

    logger.info("Shutting down Fleetplan API")
    await dispose_engine()
    logger.info("Database connections disposed")


app = FastAPI(
    title="Fleetplan API",
    description="Recurring transport order scheduling",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(recurring_orders.router, prefix="/api/v1", tags=["recurring-orders"])
