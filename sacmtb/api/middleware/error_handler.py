"""Global error handling middleware and the application error taxonomy."""

import logging
import time
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from sacmtb.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Use this class to raise application-specific errors that should
    be returned to the client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class ValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )


class MissingFieldError(ValidationError):
    """A field required by the requested operation was not supplied."""

    def __init__(self, fields: list[str]) -> None:
        super().__init__(
            message=f"Missing required field(s): {', '.join(fields)}",
            details=[{"loc": [f], "msg": "Field required", "type": "missing"} for f in fields],
        )
        self.error_type = "missing_field"
        self.fields = fields


class AuthenticationError(APIError):
    """Authentication failure error."""

    def __init__(self, message: str = "Authentication required", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="authentication_error",
            details=details,
        )


class AuthorizationError(APIError):
    """Authorization failure error."""

    def __init__(self, message: str = "Access denied", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_type="authorization_error",
            details=details,
        )


class OutOfStockError(APIError):
    """Requested quantity exceeds the product's available stock."""

    def __init__(self, product_name: str, requested: int, available: int, product_id: str | None = None) -> None:
        super().__init__(
            message=f"Only {available} left for {product_name} (requested {requested})",
            status_code=status.HTTP_409_CONFLICT,
            error_type="out_of_stock",
            details=[{"loc": ["orderItems", product_id or product_name], "msg": "Insufficient stock", "type": "out_of_stock"}],
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidSignatureError(APIError):
    """A payment or webhook signature did not verify."""

    def __init__(self, message: str = "Invalid payment signature") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="invalid_signature",
        )


class InvalidMediaError(APIError):
    """An uploaded file is missing or has the wrong type, size or count."""

    def __init__(self, message: str = "Invalid media upload", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="invalid_media",
            details=details,
        )


class InvalidTransitionError(APIError):
    """The order cannot move from its current status to the requested one."""

    def __init__(self, message: str = "Invalid status transition", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="invalid_transition",
            details=details,
        )


class DependencyFailureError(APIError):
    """A third-party service on the critical path failed or timed out."""

    def __init__(self, message: str = "Upstream service unavailable", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="dependency_failure",
            details=details,
        )


class StockReconciliationError(DependencyFailureError):
    """Payment was recorded but stock could not be decremented for some items.

    The payment state and already-applied decrements are not rolled back.
    """

    def __init__(self, order_id: str, product_ids: list[str]) -> None:
        super().__init__(
            message="Payment recorded but stock could not be reserved for every item; the order needs review",
            details=[{"loc": ["orderItems", pid], "msg": "Stock not decremented", "type": "stock_shortfall"} for pid in product_ids],
        )
        self.error_type = "stock_reconciliation"
        self.order_id = order_id
        self.product_ids = product_ids


class RateLimitError(APIError):
    """Rate limit exceeded error."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: int = 60,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_type="rate_limit_exceeded",
            details=details,
        )
        self.retry_after = retry_after


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to catch and format all exceptions.

    Ensures consistent error response format across the application.
    Logs full stack traces for debugging while returning safe messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        response = await call_next(request)
        return response

    except RateLimitError as e:
        logger.warning(
            "Rate limit exceeded: %s",
            e.message,
            extra={"request_id": request_id, "retry_after": e.retry_after},
        )
        response = create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )
        response.headers["Retry-After"] = str(e.retry_after)
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + e.retry_after)
        return response

    except APIError as e:
        # Dependency failures are ours to investigate, client errors are not
        log = logger.error if e.status_code >= 500 else logger.warning
        log(
            "API error: %s - %s",
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
        )

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception: %s\n%s",
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
