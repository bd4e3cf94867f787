import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from orangerides.core.config import settings, validate_config
from orangerides.core.database import create_all_tables
from orangerides.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from orangerides.core.logging import configure_logging
from orangerides.core.middleware.request_id import RequestIdMiddleware
from orangerides.core.validation import validate_env
from orangerides.api import admin_notifications, health, listings, owners, payments, subscriptions
from orangerides.features.plans.catalog import build_plan_catalog


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("orangerides")
    logger.info("Starting Orange Rides backend...")
    create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping Orange Rides backend...")


def create_app() -> FastAPI:
    configure_logging(settings.ENV)
    validate_env()
    validate_config(strict=getattr(settings, "CONFIG_STRICT", False))

    app = FastAPI(title="Orange Rides - Backend", lifespan=lifespan)
    # Immutable; routes reach it through get_plan_catalog
    app.state.plan_catalog = build_plan_catalog()

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.root_router, tags=["health"])
    app.include_router(subscriptions.router, prefix="/api", tags=["subscriptions"])
    app.include_router(payments.router, prefix="/api", tags=["payments"])
    app.include_router(owners.router, prefix="/api", tags=["owners"])
    app.include_router(listings.router, prefix="/api", tags=["listings"])
    app.include_router(admin_notifications.router, prefix="/api", tags=["admin-notifications"])
    return app


app = create_app()
