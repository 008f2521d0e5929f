# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .routes import health, prometheus
from .routes.v1 import (
    booking_logs as booking_logs_v1,
    bookings as bookings_v1,
    notifications as notifications_v1,
    payments as payments_v1,
    payouts as payouts_v1,
    spots as spots_v1,
    time_changes as time_changes_v1,
    webhooks as webhooks_v1,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")
    if not settings.stripe_configured:
        logger.warning("Stripe is not configured; payment endpoints will fail")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)

# Register unified error envelope handlers
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(spots_v1.router, prefix="/spots")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(time_changes_v1.router, prefix="/time-changes")
api_v1.include_router(booking_logs_v1.router, prefix="/booking-logs")
api_v1.include_router(payments_v1.router, prefix="/payments")
api_v1.include_router(payouts_v1.router, prefix="/payouts")
api_v1.include_router(notifications_v1.router, prefix="/notifications")
api_v1.include_router(webhooks_v1.router, prefix="/webhooks")

# Mount API v1 first
app.include_router(api_v1)

# Infrastructure routes stay unversioned
app.include_router(health.router)
app.include_router(prometheus.router)


@app.get("/")
def root() -> dict[str, str]:
    return {"message": f"Welcome to the {BRAND_NAME} API", "version": API_VERSION, "docs": "/docs"}
