"""
Shared pytest fixtures for the Taskboard test suite.

Provides:
    - app: Flask application (session-scoped, in-memory SQLite)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test app context + table recreation (autouse)
    - client: Flask test client
    - board: Seeded project with phases, stories, tasks and users
    - store / notifier: In-memory collaborator doubles for service tests
"""

from datetime import datetime, timezone

import pytest

from taskboard import create_app
from taskboard.models import db as _db
from taskboard.models.board import Phase, PhaseDuration, Project, Story, Task, TaskType, Milestone
from taskboard.models.user import ProjectUser, User
from tests.fakes import InMemoryStore, RecordingNotifier


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── In-memory collaborators ──────────────────────────────────────────────


@pytest.fixture()
def store():
    return InMemoryStore()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


# ── Seeded board ─────────────────────────────────────────────────────────


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture()
def board():
    """A project with three phases (last one done), a story with four tasks,
    one member, one outsider and one admin. Returns a dict of ids."""
    project = Project(title="Webshop")
    _db.session.add(project)
    _db.session.flush()

    todo = Phase(project_id=project.id, title="Todo", order=0)
    doing = Phase(project_id=project.id, title="In progress", order=1)
    done = Phase(project_id=project.id, title="Done", order=2, is_done=True)
    bug = TaskType(title="Bug", order=1, color="#f00")
    feature = TaskType(title="Feature", order=0, color="#0f0")
    milestone = Milestone(project_id=project.id, title="Beta")
    member = User(username="member", timezone="Europe/Helsinki")
    outsider = User(username="outsider")
    admin = User(username="admin", is_admin=True)
    _db.session.add_all([todo, doing, done, bug, feature, milestone, member, outsider, admin])
    _db.session.flush()

    _db.session.add(ProjectUser(project_id=project.id, user_id=member.id, role="editor"))

    story = Story(project_id=project.id, sprint_id=3, title="Checkout flow",
                  description="Cart to payment", estimate=5, priority=2,
                  time_start=_utc(2024, 3, 1, 8, 0))
    _db.session.add(story)
    _db.session.flush()

    tasks = [
        Task(story_id=story.id, phase_id=todo.id, user_id=member.id, type_id=bug.id,
             title="Cart totals", time_start=_utc(2024, 3, 2, 9, 0)),
        Task(story_id=story.id, phase_id=doing.id, user_id=member.id, type_id=feature.id,
             title="Payment form", time_start=_utc(2024, 3, 4, 10, 30)),
        Task(story_id=story.id, phase_id=done.id, user_id=admin.id, type_id=feature.id,
             title="Shipping options", is_done=True, time_start=_utc(2024, 3, 1, 9, 0),
             time_end=_utc(2024, 3, 3, 17, 0)),
        Task(story_id=story.id, phase_id=done.id, type_id=999,
             title="Legacy cleanup", is_done=True),
    ]
    _db.session.add_all(tasks)
    _db.session.flush()

    _db.session.add_all([
        PhaseDuration(phase_id=todo.id, story_id=story.id, duration=100),
        PhaseDuration(phase_id=doing.id, story_id=story.id, duration=30),
        PhaseDuration(phase_id=doing.id, story_id=story.id, duration=20),
    ])
    _db.session.commit()

    return {
        "project_id": project.id,
        "story_id": story.id,
        "phase_ids": {"todo": todo.id, "doing": doing.id, "done": done.id},
        "task_ids": [t.id for t in tasks],
        "type_ids": {"bug": bug.id, "feature": feature.id},
        "milestone_id": milestone.id,
        "member_id": member.id,
        "outsider_id": outsider.id,
        "admin_id": admin.id,
    }
