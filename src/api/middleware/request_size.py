"""Request body size limits, tighter for anonymous lead submissions."""

import logging
import re
from typing import Callable

from fastapi import Request, Response, status

from src.api.middleware.error_handler import create_error_response
from src.core.config import get_settings

logger = logging.getLogger(__name__)

# POST /api/v1/public/{handle}/leads
_LEAD_SUBMISSION_PATH = re.compile(r"^/api/v1/public/[^/]+/leads/?$")


def body_limit_for(method: str, path: str) -> int:
    """Largest body accepted for a request, in bytes."""
    settings = get_settings()
    if method == "POST" and _LEAD_SUBMISSION_PATH.match(path):
        return settings.max_lead_body_size
    return settings.max_request_body_size


async def request_size_limit_middleware(
    request: Request,
    call_next: Callable[[Request], Response],
) -> Response:
    """Reject bodies whose declared Content-Length is over the limit.

    vCard photos arrive as data URLs, so the general limit is generous;
    public lead forms take only short answers.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: The route's response or a 413 error envelope.
    """
    content_length = request.headers.get("content-length")
    if not content_length:
        return await call_next(request)

    try:
        length = int(content_length)
    except ValueError:
        logger.debug("Ignoring malformed Content-Length: %s", content_length)
        return await call_next(request)

    limit = body_limit_for(request.method, request.url.path)
    if length > limit:
        logger.warning(
            "Rejected %s %s: body of %d bytes exceeds %d",
            request.method,
            request.url.path,
            length,
            limit,
        )
        return create_error_response(
            error_type="request_too_large",
            message=f"Request body exceeds maximum size of {limit} bytes",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            request_id=request.headers.get("X-Request-ID"),
        )

    return await call_next(request)
