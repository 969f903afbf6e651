"""
Change feed model.

Models:
    - ChangeEvent: one row per create/update/destroy published by the
      workflow services. Observers poll the feed instead of a socket.
"""

import json
from datetime import datetime, timezone

from taskboard.models import db

CHANGE_VERBS = {"create", "update", "destroy"}


class ChangeEvent(db.Model):
    __tablename__ = "change_events"

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(30), nullable=False, index=True, comment="story / task / ...")
    entity_id = db.Column(db.Integer, nullable=True, index=True)
    verb = db.Column(db.String(10), nullable=False)
    payload_json = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "verb": self.verb,
            "payload": json.loads(self.payload_json) if self.payload_json else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ChangeEvent {self.id}: {self.verb} {self.entity_type}#{self.entity_id}>"
