"""
Taskboard user models.

Models:
    - User: board user with display language and timezone
    - ProjectUser: project membership carrying the member's role
"""

from datetime import datetime, timezone

from taskboard.models import db

# Role hierarchy: admin > editor > viewer
ROLES = {"admin", "editor", "viewer"}


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), nullable=False, unique=True)
    first_name = db.Column(db.String(100), default="")
    last_name = db.Column(db.String(100), default="")
    email = db.Column(db.String(255), default="")
    language = db.Column(db.String(10), default="en")
    timezone = db.Column(db.String(64), default="UTC", comment="IANA zone name")
    is_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<User {self.id}: {self.username}>"


class ProjectUser(db.Model):
    """Membership of a user in a project."""

    __tablename__ = "project_users"
    __table_args__ = (
        db.UniqueConstraint("project_id", "user_id", name="uq_project_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    role = db.Column(db.String(20), default="viewer", comment="admin | editor | viewer")
