"""Schemas shared by every router: health payloads and the error envelope."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness payload."""

    status: HealthStatus
    environment: str = Field(description="Deployment environment from APP_ENV")
    timestamp: datetime = Field(default_factory=utc_now)
    version: str = "0.1.0"


class CheckResult(BaseModel):
    """One readiness check.

    Checks with ``required=False`` are informational and never make the
    service unready.
    """

    name: str
    healthy: bool
    required: bool = True
    latency_ms: float | None = None
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness payload."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=utc_now)
    checks: list[CheckResult] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """A single problem, usually tied to one input field."""

    loc: list[str] | None = Field(default=None, description="Path to the offending field, e.g. ['email']")
    msg: str
    type: str = "error"


class ErrorResponse(BaseModel):
    """Body of every error the API returns."""

    error: str = Field(description="Machine-readable category such as 'not_found' or 'conflict'")
    message: str = Field(description="Text safe to show to the person using the page")
    details: list[ErrorDetail] | None = None
    request_id: str | None = Field(default=None, description="Echo of the X-Request-ID header")
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        """Build an envelope from a raised error.

        Details may use either ``loc``/``msg`` or the ``field``/``message``
        shape the services raise with.
        """
        error_details = None
        if details:
            error_details = [
                ErrorDetail(
                    loc=d.get("loc") or ([str(d["field"])] if d.get("field") else None),
                    msg=d.get("msg") or d.get("message") or str(d),
                    type=d.get("type", "error"),
                )
                for d in details
            ]
        return cls(error=error_type, message=message, details=error_details, request_id=request_id)


class LatencyStatsResponse(BaseModel):
    """Recent request latency statistics kept by the latency middleware."""

    overall: dict[str, float | int] = Field(description="Aggregated latency figures")
    by_path: dict[str, dict[str, float | int]] = Field(
        default_factory=dict, description="Sample count and average latency per normalized path"
    )
