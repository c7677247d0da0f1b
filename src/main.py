"""Linket API application: dashboard, public pages and tag taps."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.middleware.request_size import request_size_limit_middleware
from src.api.routes import (
    account,
    analytics,
    health,
    lead_forms,
    leads,
    linkets,
    profiles,
    public,
    vcard,
)
from src.core.config import get_settings
from src.core.rate_limiter import init_rate_limiter, shutdown_rate_limiter

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Run the lead rate limiter's sweep for the life of the app."""
    settings = get_settings()
    logger.info(
        "Starting %s (%s); public pages at %s",
        settings.app_name,
        settings.app_env,
        settings.public_profile_url("{handle}"),
    )
    if not settings.notifications_enabled:
        logger.warning("RESEND_API_KEY is not set; lead notification emails are disabled")

    await init_rate_limiter()
    yield
    await shutdown_rate_limiter()
    logger.info("Stopped %s", settings.app_name)


def create_app() -> FastAPI:
    """Build the app with middleware and routers.

    API docs are served only in debug mode.
    """
    settings = get_settings()

    app = FastAPI(
        title="Linket API",
        description="Link-in-bio profiles, lead capture and NFC tag redirects",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        # Read by the dashboard for CSV/vCard downloads and lead form backoff
        expose_headers=["Content-Disposition", "Retry-After"],
    )

    # Added last runs first: size limit, latency, then error formatting
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_size_limit_middleware)

    # Health checks and short tap URLs live at the root
    app.include_router(health.router)
    app.include_router(linkets.tap_router)

    api_v1_router = APIRouter(prefix="/api/v1")

    # Dashboard (authenticated)
    api_v1_router.include_router(account.router)
    api_v1_router.include_router(profiles.router)
    api_v1_router.include_router(lead_forms.router)
    api_v1_router.include_router(leads.router)
    api_v1_router.include_router(linkets.router)
    api_v1_router.include_router(analytics.router)
    api_v1_router.include_router(vcard.router)

    # Public pages
    api_v1_router.include_router(public.router)
    api_v1_router.include_router(linkets.tap_router)

    app.include_router(api_v1_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
