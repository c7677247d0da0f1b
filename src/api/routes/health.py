"""Liveness, readiness and latency endpoints."""

import time

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentUser
from src.api.middleware.latency_logging import get_latency_stats
from src.core.config import get_settings
from src.core.supabase import check_database_connection
from src.schemas.auth import AuthenticatedResponse
from src.schemas.common import (
    CheckResult,
    HealthResponse,
    HealthStatus,
    LatencyStatsResponse,
    ReadinessResponse,
)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check() -> HealthResponse:
    """Always healthy while the process serves requests."""
    return HealthResponse(status=HealthStatus.HEALTHY, environment=get_settings().app_env)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable"}},
    summary="Readiness check",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check the database and report whether lead emails can go out.

    Only the database decides readiness. Missing email credentials are
    reported but leave the service ready, since lead capture still works.

    Args:
        response: Used to set 503 when a required check fails.

    Returns:
        ReadinessResponse: Overall status plus one entry per check.
    """
    started = time.perf_counter()
    db_result = await check_database_connection()
    db_latency_ms = round((time.perf_counter() - started) * 1000, 2)

    notifications = get_settings().notifications_enabled
    checks = [
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=db_latency_ms,
            error=db_result.get("error"),
        ),
        CheckResult(
            name="lead_notifications",
            healthy=notifications,
            required=False,
            error=None if notifications else "RESEND_API_KEY is not set",
        ),
    ]

    ready = all(check.healthy for check in checks if check.required)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=HealthStatus.HEALTHY if ready else HealthStatus.UNHEALTHY,
        checks=checks,
    )


@router.get("/health/stats", response_model=LatencyStatsResponse, summary="Request latency statistics")
async def latency_stats() -> LatencyStatsResponse:
    """Latency percentiles over recent requests, overall and per path."""
    stats = get_latency_stats()
    return LatencyStatsResponse(overall=stats.get_stats(), by_path=stats.get_stats_by_path())


@router.get(
    "/health/auth",
    response_model=AuthenticatedResponse,
    responses={401: {"description": "Missing or invalid access token"}},
    summary="Token check",
)
async def authenticated_check(user: CurrentUser) -> AuthenticatedResponse:
    """Echo the account a dashboard access token resolves to."""
    return AuthenticatedResponse(user_id=str(user.user_id), email=user.email)
