"""Request body size limiting middleware."""

import logging
from typing import Callable

from fastapi import Request, Response, status

from sacmtb.api.middleware.error_handler import create_error_response
from sacmtb.core.config import get_settings

logger = logging.getLogger(__name__)


async def request_size_limit_middleware(
    request: Request,
    call_next: Callable[[Request], Response],
) -> Response:
    """Reject requests whose declared body exceeds the configured maximum.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or a 413 error.
    """
    settings = get_settings()
    # Media uploads carry multipart file bodies
    if "/upload" in request.url.path:
        max_size = settings.max_upload_body_size
    else:
        max_size = settings.max_request_body_size

    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit():
        length = int(content_length)
        if length > max_size:
            logger.warning(
                "Request body too large: %d bytes (max: %d)",
                length,
                max_size,
            )
            return create_error_response(
                error_type="request_too_large",
                message=f"Request body exceeds maximum size of {max_size} bytes",
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                request_id=request.headers.get("X-Request-ID"),
            )

    return await call_next(request)
