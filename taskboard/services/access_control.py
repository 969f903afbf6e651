"""Story access checks for the read-path.

Admins see every story. Other users see stories of projects they are a
member of, with their membership role. Everyone else is refused.
"""

import logging

from taskboard.core.exceptions import AccessDeniedError
from taskboard.models import db
from taskboard.models.board import Story
from taskboard.models.user import ProjectUser
from taskboard.services.collaborators import AccessControl

logger = logging.getLogger(__name__)


class ProjectMemberAccess(AccessControl):
    async def has_access(self, user, story_id):
        if user is None:
            raise AccessDeniedError(None, story_id)
        if user.is_admin:
            return "admin"

        try:
            story = db.session.get(Story, story_id)
        except OverflowError:
            story = None  # id outside the INTEGER range
        if story is not None:
            membership = ProjectUser.query.filter_by(
                project_id=story.project_id, user_id=user.id,
            ).first()
            if membership is not None:
                return membership.role

        logger.info("User %s denied access to story %s", user.id, story_id,
                    extra={"story_id": story_id})
        raise AccessDeniedError(user.id, story_id)
