"""Request latency logging middleware."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Thresholds for log levels (in milliseconds)
SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000

HEALTH_PATHS = ("/health", "/health/ready")


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, path, status and latency for every request.

    Slow requests and error statuses are logged at elevated levels; health
    checks only show up at debug level when they are slow.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler.
    """
    start_time = time.perf_counter()
    method = request.method
    path = request.url.path
    is_health_check = path in HEALTH_PATHS

    response = None
    error_occurred = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        error_occurred = True
        raise
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response else 500

        log_data = {
            "method": method,
            "path": path,
            "status_code": status_code,
            "latency_ms": round(latency_ms, 2),
            "error": error_occurred,
        }
        if not is_health_check and request.query_params:
            log_data["query_params"] = str(request.query_params)

        if is_health_check:
            if latency_ms > 100:
                logger.debug("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif error_occurred or status_code >= 500:
            logger.error("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
            logger.error("VERY SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif status_code >= 400:
            logger.warning("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        else:
            logger.info("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
