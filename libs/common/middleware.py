"""Request context and access logging for the marketplace services.

Each request is bound to a request id (``X-Request-ID``, generated when
absent) and, on internal read-through calls, to the calling service
(``X-Caller-Service``), so a referral accrual and the orders-service reads it
triggers share one id in the logs.
"""
import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

REQUEST_ID_HEADER = "X-Request-ID"
CALLER_SERVICE_HEADER = "X-Caller-Service"

# No access line for health checks and API docs
QUIET_PATHS = frozenset({"/health", "/docs", "/openapi.json"})

logger = get_logger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the request context and write one access line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        caller_service = request.headers.get(CALLER_SERVICE_HEADER)
        request_id = set_request_context(
            request_id=request.headers.get(REQUEST_ID_HEADER),
            path=request.url.path,
            method=request.method,
            caller_service=caller_service,
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
            if request.url.path not in QUIET_PATHS:
                logger.log(
                    logging.WARNING if response.status_code >= 400 else logging.INFO,
                    "%s %s -> %s",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={"extra_fields": {
                        "status_code": response.status_code,
                        "duration_ms": _elapsed_ms(started),
                        "internal": caller_service is not None,
                    }},
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            logger.exception(
                "%s %s failed",
                request.method,
                request.url.path,
                extra={"extra_fields": {"duration_ms": _elapsed_ms(started)}},
            )
            raise
        finally:
            clear_request_context()


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
