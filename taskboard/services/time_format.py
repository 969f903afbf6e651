"""Localized display times for the story tasks view."""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskboard.services.collaborators import TimeFormatter

logger = logging.getLogger(__name__)


class ZoneInfoTimeFormatter(TimeFormatter):
    """Converts stored UTC timestamps into a user's IANA timezone.

    Naive values are taken as UTC. Unknown zone names fall back to
    ``default_timezone``.
    """

    def __init__(self, default_timezone: str = "UTC"):
        self.default_timezone = default_timezone

    def _zone(self, name):
        try:
            return ZoneInfo(name or self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using %s", name, self.default_timezone)
            return ZoneInfo(self.default_timezone)

    def localize(self, value, timezone_name):
        if not isinstance(value, datetime):
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self._zone(timezone_name))
