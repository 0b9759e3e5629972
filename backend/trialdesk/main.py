# backend/trialdesk/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import init_db
from .errors import register_error_handlers
from .routes.v1 import (
    availability as availability_v1,
    follow_ups as follow_ups_v1,
    health as health_v1,
    lifecycle as lifecycle_v1,
    payments as payments_v1,
    trials as trials_v1,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} trial desk starting up...")
    logger.info(
        f"Environment: {settings.environment}, reference timezone: {settings.reference_timezone}"
    )
    if settings.create_schema_on_startup and not is_running_tests():
        init_db()
        logger.info("Database schema ensured")
    if not settings.slot_lock_enabled:
        logger.info("Redis slot lock disabled; relying on the database reservation alone")

    yield

    logger.info(f"{BRAND_NAME} trial desk shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(trials_v1.router, prefix="/trials")
api_v1.include_router(lifecycle_v1.router, prefix="/lifecycle")
api_v1.include_router(payments_v1.router)
api_v1.include_router(follow_ups_v1.router, prefix="/follow-ups")
api_v1.include_router(health_v1.router)

app.include_router(api_v1)
