"""
Taskboard Change Feed.

ChangeNotifier implementation that appends one ``ChangeEvent`` row per
published create/update/destroy and logs it. Observers read the feed
through ``GET /api/v1/changes``.

Publishing is fire-and-forget: a failure to store an event is rolled back
and logged, never raised into the workflow that published it.
"""

import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from taskboard.models import db
from taskboard.models.change_event import ChangeEvent
from taskboard.services.collaborators import ChangeNotifier

logger = logging.getLogger(__name__)


class ChangeFeedNotifier(ChangeNotifier):
    """Stores published changes in the ``change_events`` table."""

    def _append(self, verb, entity_type, entity_id, payload=None):
        logger.debug("publish %s %s#%s", verb, entity_type, entity_id)
        try:
            event = ChangeEvent(
                entity_type=entity_type,
                entity_id=entity_id,
                verb=verb,
                payload_json=json.dumps(payload, default=str) if payload is not None else "",
            )
            db.session.add(event)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not publish %s for %s#%s", verb, entity_type, entity_id)

    async def publish_create(self, entity_type, payload):
        self._append("create", entity_type, payload.get("id"), payload)

    async def publish_update(self, entity_type, entity_id, payload):
        self._append("update", entity_type, entity_id, payload)

    async def publish_destroy(self, entity_type, entity_id):
        self._append("destroy", entity_type, entity_id)


def list_changes(entity_type=None, entity_id=None):
    """Query for the change feed, oldest first."""
    q = ChangeEvent.query
    if entity_type:
        q = q.filter_by(entity_type=entity_type)
    if entity_id is not None:
        q = q.filter_by(entity_id=entity_id)
    return q.order_by(ChangeEvent.id)
