"""Error types raised by services and the middleware that renders them."""

import logging
import time
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError as PostgrestAPIError

from src.core.supabase import UNIQUE_VIOLATION
from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors returned to the client as an error envelope.

    Subclasses set ``status_code``, ``error_type`` and ``default_message``.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message shown to the client.
            details: Optional per-field details (``field``/``message`` or ``loc``/``msg``).
        """
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str]:
        """Extra response headers for this error."""
        return {}


class NotFoundError(APIError):
    """Unknown handle, tag, template or record."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_message = "Resource not found"


class ValidationError(APIError):
    """Input the service refuses: blank names, bad answers, unknown claim codes."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"
    default_message = "Validation error"


class AuthorizationError(APIError):
    """The record belongs to another account.

    Also used when the record does not exist, so other accounts'
    profiles and tags are not revealed.
    """

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "authorization_error"
    default_message = "Access denied"


class ConflictError(APIError):
    """Duplicate profile handle, field key, or a tag claimed by someone else."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"
    default_message = "Resource already exists"


class RateLimitError(APIError):
    """Too many lead submissions from one sender."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_type = "rate_limit_exceeded"
    default_message = "Rate limit exceeded"

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 60,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.retry_after = retry_after

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(time.time()) + self.retry_after),
        }


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the standard error envelope.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.
        headers: Optional extra response headers.

    Returns:
        JSONResponse: Formatted error response.
    """
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Turn exceptions escaping a route into error envelopes.

    Service errors keep their status and message. Storage errors that a
    service did not translate become a 409 for unique violations and a
    generic 500 otherwise, without leaking database details.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: The route's response or an error envelope.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except APIError as e:
        logger.warning(
            "%s %s -> %s: %s",
            request.method,
            request.url.path,
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
            headers=e.headers,
        )

    except PostgrestAPIError as e:
        if e.code == UNIQUE_VIOLATION:
            logger.warning("Unhandled unique violation on %s: %s", request.url.path, e.message)
            return create_error_response(
                error_type=ConflictError.error_type,
                message=ConflictError.default_message,
                status_code=ConflictError.status_code,
                request_id=request_id,
            )
        logger.error(
            "Storage error on %s: %s (code=%s, details=%s)",
            request.url.path,
            e.message,
            e.code,
            e.details,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="storage_error",
            message="The data store rejected the request",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )

    except HTTPException as e:
        logger.warning("HTTP %s on %s: %s", e.status_code, request.url.path, e.detail)
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
            headers=getattr(e, "headers", None),
        )

    except Exception as e:
        logger.error(
            "Unhandled exception on %s: %s\n%s",
            request.url.path,
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
