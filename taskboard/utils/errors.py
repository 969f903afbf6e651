"""Standard JSON error bodies for the Taskboard API.

Every error response has the shape::

    {"error": "<message>", "code": "ERR_...", "details": {...}}

``details`` is omitted when empty.

Usage
-----
    from taskboard.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Story not found")
    return api_error(E.WORKFLOW, "Split failed", details={"stage": "finalize"})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes returned in the ``code`` field."""

    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    WORKFLOW = "ERR_WORKFLOW"
    INTERNAL = "ERR_INTERNAL"


STATUS_FOR_CODE: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.RATE_LIMITED: 429,
    E.WORKFLOW: 500,
    E.INTERNAL: 500,
}


def error_body(code: str, message: str, details: dict | None = None) -> dict:
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    return body


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build a ``(response, status)`` pair for a Flask view or error handler.

    The status comes from ``STATUS_FOR_CODE`` unless ``status`` overrides
    it; unknown codes answer 400.
    """
    http_status = status or STATUS_FOR_CODE.get(code, 400)
    return jsonify(error_body(code, message, details)), http_status
