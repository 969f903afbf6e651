"""Collaborator contracts consumed by the story workflow services.

The workflows never touch the database, the notification transport or
the access rules directly. They receive these collaborators at
construction time, so tests can substitute in-memory doubles.

Filters (``where``) are dicts keyed by canonical record field names. A
list, tuple or set value means "field in values".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


class DataAccess(ABC):
    """Read side. Every method raises ``DataAccessError`` on failure."""

    @abstractmethod
    async def get_story(self, story_id: int):
        ...

    @abstractmethod
    async def get_phases(self, where: dict) -> list:
        ...

    @abstractmethod
    async def get_tasks(self, where: dict) -> list:
        ...

    @abstractmethod
    async def get_task(self, task_id: int):
        ...

    @abstractmethod
    async def get_users(self, where: dict) -> list:
        ...

    @abstractmethod
    async def get_types(self, where: dict) -> list:
        ...

    @abstractmethod
    async def get_milestones(self, where: dict) -> list:
        ...

    @abstractmethod
    async def get_phase_durations(self, where: dict) -> list:
        ...


class Persistence(ABC):
    """Write side. Every method raises ``PersistenceError`` on failure."""

    @abstractmethod
    async def create(self, record):
        """Insert ``record`` and return the stored copy (with id)."""

    @abstractmethod
    async def update(self, record_type: type, where: dict, patch: dict) -> list:
        """Apply ``patch`` to every row matching ``where``; return the updated records."""

    @abstractmethod
    async def save(self, record) -> None:
        """Write every field of an existing record."""


class ChangeNotifier(ABC):
    """
    Observer sink called after each mutation.

    Fire-and-forget: implementations must not raise. A task move is
    published as ``publish_destroy`` followed by ``publish_create`` for the
    same task id; consumers treat the pair as one logical move.
    """

    @abstractmethod
    async def publish_create(self, entity_type: str, payload: dict) -> None:
        ...

    @abstractmethod
    async def publish_update(self, entity_type: str, entity_id: int, payload: dict) -> None:
        ...

    @abstractmethod
    async def publish_destroy(self, entity_type: str, entity_id: int) -> None:
        ...


class AccessControl(ABC):
    @abstractmethod
    async def has_access(self, user, story_id: int) -> str:
        """Return the user's role for the story or raise ``AccessDeniedError``."""


class TimeFormatter(ABC):
    @abstractmethod
    def localize(self, value: datetime | None, timezone: str) -> datetime | None:
        """Convert ``value`` into ``timezone`` for display."""


@dataclass(frozen=True)
class Collaborators:
    """Bundle built once by the application factory and handed to services."""

    data: DataAccess
    persistence: Persistence
    notifier: ChangeNotifier
    access: AccessControl
    time_formatter: TimeFormatter
