# backend/jayple/main.py
"""
FastAPI application for the Jayple dispatch engine.

RPC-style endpoints live under /api/v1; /health and /metrics are public.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import Base, engine
from .errors import register_error_handlers
from .routes import health, prometheus
from .routes.v1 import accounts as accounts_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import disputes as disputes_v1
from .routes.v1 import payments as payments_v1
from .routes.v1 import settlements as settlements_v1

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    if settings.is_sqlite and not is_running_tests():
        # Local development database; PostgreSQL schemas are provisioned separately
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("SQLite schema ensured")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

register_error_handlers(app)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(payments_v1.router, prefix="/payments")
api_v1.include_router(settlements_v1.router, prefix="/settlements")
api_v1.include_router(accounts_v1.router, prefix="/accounts")
api_v1.include_router(disputes_v1.router, prefix="/disputes")

app.include_router(api_v1)
app.include_router(health.router)
app.include_router(prometheus.router)
