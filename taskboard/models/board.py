"""
Taskboard board models.

Models:
    - Project: owner of phases, sprints, milestones and stories
    - Sprint: time-boxed story container (sprint id 0 is the project backlog
      and has no row here)
    - Phase: ordered workflow stage of a project (design, build, review, ...)
    - Story: unit of work, optionally split from a parent story
    - Task: unit of work inside a story, sitting in exactly one phase
    - PhaseDuration: ledger of time a story spent in a phase
    - TaskType, Milestone: lookup data for story and task forms

Column names match the dataclass fields in ``taskboard.core.records`` so
the store can convert rows to records field-for-field.
"""

from datetime import datetime, timezone

from taskboard.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class Project(db.Model):
    """Top-level container for a board."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Project {self.id}: {self.title}>"


class Sprint(db.Model):
    """Iteration container for stories within a project."""

    __tablename__ = "sprints"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    date_start = db.Column(db.Date, nullable=True)
    date_end = db.Column(db.Date, nullable=True)

    def __repr__(self):
        return f"<Sprint {self.id}: {self.title}>"


class Phase(db.Model):
    """
    Ordered workflow stage of a project.

    The not-done phase with the lowest ``order`` is the project's first
    phase; tasks moved to the backlog land there.
    """

    __tablename__ = "phases"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, default=0, comment="Sort order within project")
    is_done = db.Column(db.Boolean, default=False)

    def __repr__(self):
        return f"<Phase {self.id}: {self.title} order={self.order}>"


class TaskType(db.Model):
    __tablename__ = "task_types"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False)
    order = db.Column(db.Integer, default=0)
    color = db.Column(db.String(20), default="")


class Milestone(db.Model):
    __tablename__ = "milestones"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    deadline = db.Column(db.Date, nullable=True)


class Story(db.Model):
    """
    Unit of work on the board.

    ``sprint_id`` is a plain integer rather than a foreign key: 0 means the
    story lives in the project backlog. ``parent_id`` is set on stories
    created by a split.
    """

    __tablename__ = "stories"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    sprint_id = db.Column(db.Integer, nullable=False, default=0, index=True,
                          comment="0 = project backlog")
    milestone_id = db.Column(
        db.Integer, db.ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True,
    )
    type_id = db.Column(
        db.Integer, db.ForeignKey("task_types.id", ondelete="SET NULL"), nullable=True,
    )
    parent_id = db.Column(
        db.Integer, db.ForeignKey("stories.id", ondelete="SET NULL"), nullable=True,
        comment="Source story when created by a split",
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    estimate = db.Column(db.Float, default=0)
    priority = db.Column(db.Integer, default=0)
    is_done = db.Column(db.Boolean, default=False)
    time_start = db.Column(db.DateTime(timezone=True), nullable=True)
    time_end = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Story {self.id}: {self.title}>"


class Task(db.Model):
    """Unit of work inside a story; belongs to exactly one phase."""

    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    story_id = db.Column(
        db.Integer, db.ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    phase_id = db.Column(
        db.Integer, db.ForeignKey("phases.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    type_id = db.Column(
        db.Integer, db.ForeignKey("task_types.id", ondelete="SET NULL"), nullable=True,
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    priority = db.Column(db.Integer, default=0)
    is_done = db.Column(db.Boolean, default=False)
    time_start = db.Column(db.DateTime(timezone=True), nullable=True)
    time_end = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Task {self.id}: {self.title}>"


class PhaseDuration(db.Model):
    """
    Ledger row of time a story spent in a phase.

    Several rows may exist per (phase, story); readers sum them.
    """

    __tablename__ = "phase_durations"

    id = db.Column(db.Integer, primary_key=True)
    phase_id = db.Column(
        db.Integer, db.ForeignKey("phases.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    story_id = db.Column(
        db.Integer, db.ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True,
    )
    duration = db.Column(db.Float, default=0, comment="Seconds spent in the phase")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
