"""
API Middleware.

Every HTTP request, webhooks included, gets a request id (taken from
``X-Request-ID`` when the caller sends one) that is bound as the log
``trace_id`` and echoed back with the elapsed time.
"""

from __future__ import annotations

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from call_logger.logging_config import generate_trace_id, get_logger, trace_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 1)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for logging and report how the request ended."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_trace_id()
        token = trace_id_var.set(request_id)
        started = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "api_request_failed",
                method=request.method,
                path=request.url.path,
                elapsed_ms=_elapsed_ms(started),
                exc_info=True,
            )
            raise
        finally:
            trace_id_var.reset(token)

        elapsed_ms = _elapsed_ms(started)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = str(elapsed_ms)

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "api_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            elapsed_ms=elapsed_ms,
            trace_id=request_id,
        )
        return response
