"""
Taskboard domain records.

Plain dataclasses passed between the workflow services and their
collaborators. They carry no persistence or publishing behavior; the
SQLAlchemy rows in ``taskboard.models`` mirror them field-for-field and are
converted at the store boundary.

Records:
    - Story, Task, Phase, PhaseDuration
    - User, TaskType, Milestone
"""

from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime

# Sprint id used for stories that sit in the project backlog (no time box).
BACKLOG_SPRINT_ID = 0


@dataclass
class Story:
    id: int | None = None
    project_id: int | None = None
    sprint_id: int = BACKLOG_SPRINT_ID
    milestone_id: int | None = None
    type_id: int | None = None
    parent_id: int | None = None
    title: str = ""
    description: str = ""
    estimate: float = 0
    priority: int = 0
    is_done: bool = False
    time_start: datetime | None = None
    time_end: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def in_backlog(self) -> bool:
        return self.sprint_id == BACKLOG_SPRINT_ID


@dataclass
class Task:
    id: int | None = None
    story_id: int | None = None
    phase_id: int | None = None
    user_id: int | None = None
    type_id: int | None = None
    title: str = ""
    description: str = ""
    priority: int = 0
    is_done: bool = False
    time_start: datetime | None = None
    time_end: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Phase:
    id: int | None = None
    project_id: int | None = None
    title: str = ""
    order: int = 0
    is_done: bool = False


@dataclass
class PhaseDuration:
    id: int | None = None
    phase_id: int | None = None
    story_id: int | None = None
    task_id: int | None = None
    duration: float = 0


@dataclass
class User:
    id: int | None = None
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    language: str = "en"
    timezone: str = "UTC"
    is_admin: bool = False


@dataclass
class TaskType:
    id: int | None = None
    title: str = ""
    order: int = 0
    color: str = ""


@dataclass
class Milestone:
    id: int | None = None
    project_id: int | None = None
    title: str = ""
    description: str = ""
    deadline: date | None = None


def _plain(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return serialize(value)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def serialize(record) -> dict:
    """Convert a record (or any dataclass) into a JSON-ready dict.

    Nested dataclasses, lists and dicts are converted recursively and
    date/datetime values become ISO-8601 strings.
    """
    if record is None:
        return None
    return {f.name: _plain(getattr(record, f.name)) for f in fields(record)}
