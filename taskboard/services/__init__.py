"""
Taskboard service layer.

``build_collaborators`` wires the SQL-backed collaborators once per
application; views fetch them with ``get_collaborators`` and hand them to
the workflow services. Tests replace the bundle in ``app.extensions``.
"""

from flask import current_app

from taskboard.services.collaborators import Collaborators

EXTENSION_KEY = "taskboard.collaborators"


def build_collaborators(app) -> Collaborators:
    from taskboard.services.access_control import ProjectMemberAccess
    from taskboard.services.change_feed import ChangeFeedNotifier
    from taskboard.services.sql_store import SqlDataAccess, SqlPersistence
    from taskboard.services.time_format import ZoneInfoTimeFormatter

    return Collaborators(
        data=SqlDataAccess(),
        persistence=SqlPersistence(),
        notifier=ChangeFeedNotifier(),
        access=ProjectMemberAccess(),
        time_formatter=ZoneInfoTimeFormatter(app.config.get("DEFAULT_TIMEZONE", "UTC")),
    )


def get_collaborators() -> Collaborators:
    return current_app.extensions[EXTENSION_KEY]
