"""
Request timing and correlation ids.

Each response carries ``X-Request-ID`` (echoed from the request when the
caller sent one) and ``X-Request-Duration-Ms``. Requests slower than
``SLOW_REQUEST_MS`` are logged at WARNING, server errors at ERROR and
everything else at DEBUG, with the request context as log extras.
"""

import logging
import time
import uuid

from flask import Flask, current_app, g, request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
DURATION_HEADER = "X-Request-Duration-Ms"

# Polled by load balancers; never logged
_UNLOGGED_PATHS = frozenset({"/api/v1/health"})


def _request_extra(response, duration_ms):
    user = getattr(g, "current_user", None)
    return {
        "request_id": g.request_id,
        "method": request.method,
        "path": request.path,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "remote_addr": request.remote_addr,
        "user_id": user.id if user is not None else None,
        "story_id": (request.view_args or {}).get("story_id"),
    }


def init_request_timing(app: Flask):
    """Register the timing hooks on ``app``."""

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish_timer(response):
        started = getattr(g, "request_started", None)
        if started is None:
            return response

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = g.request_id
        response.headers[DURATION_HEADER] = f"{duration_ms:.1f}"
        if request.path in _UNLOGGED_PATHS:
            return response

        extra = _request_extra(response, duration_ms)
        summary = "%s %s %d (%.0fms)"
        args = (request.method, request.path, response.status_code, duration_ms)
        if duration_ms > current_app.config.get("SLOW_REQUEST_MS", 1000):
            logger.warning("Slow request: " + summary, *args, extra=extra)
        elif response.status_code >= 500:
            logger.error("Server error: " + summary, *args, extra=extra)
        else:
            logger.debug("Request: " + summary, *args, extra=extra)
        return response
