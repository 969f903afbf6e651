"""
Current-user middleware — resolves ``X-User-ID`` into ``g.current_user``.

``g.current_user`` is a ``taskboard.core.records.User`` or None. Views
that need a user (the story tasks view) reject requests without one.
Authentication itself happens upstream of this service.
"""

import logging

from flask import g, request

from taskboard.core.records import User
from taskboard.models import db
from taskboard.models.user import User as UserRow
from taskboard.services.sql_store import to_record

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-ID"


def init_current_user(app):
    """Register the user lookup as a before_request hook."""

    @app.before_request
    def _load_current_user():
        g.current_user = None
        raw = request.headers.get(USER_HEADER, "").strip()
        if not raw:
            return
        try:
            user_id = int(raw)
        except ValueError:
            logger.debug("Ignoring non-numeric %s header: %r", USER_HEADER, raw)
            return
        try:
            row = db.session.get(UserRow, user_id)
        except OverflowError:
            logger.debug("Ignoring out-of-range %s header: %r", USER_HEADER, raw)
            return
        if row is not None:
            g.current_user = to_record(row, User)
