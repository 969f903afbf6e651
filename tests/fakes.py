"""
In-memory collaborator doubles for service-level tests.

InMemoryStore implements both DataAccess and Persistence over dicts of
records. Each call yields to the event loop once so concurrent jobs really
interleave. Failures are injected per method with ``fail_on``.
"""

import asyncio
import itertools
from collections import defaultdict
from dataclasses import replace

from taskboard.core import records
from taskboard.core.exceptions import AccessDeniedError, DataAccessError, NotFoundError, PersistenceError
from taskboard.services.collaborators import AccessControl, ChangeNotifier, DataAccess, Persistence


def _matches(record, where):
    for key, value in (where or {}).items():
        if not hasattr(record, key):
            raise ValueError(f"Unknown filter field {key!r}")
        actual = getattr(record, key)
        if isinstance(value, (list, tuple, set, frozenset)):
            if actual not in value:
                return False
        elif actual != value:
            return False
    return True


class InMemoryStore(DataAccess, Persistence):
    def __init__(self):
        self.tables = defaultdict(dict)
        self._ids = defaultdict(lambda: itertools.count(1))
        self._failures = {}
        self.calls = []

    # ── Test helpers ──────────────────────────────────────────────────

    def add(self, record):
        """Insert a record directly (assigning an id) and return it."""
        record_type = type(record)
        if record.id is None:
            record = replace(record, id=next(self._ids[record_type]))
        else:
            # keep generated ids clear of explicit ones
            while True:
                candidate = next(self._ids[record_type])
                if candidate >= record.id:
                    break
        self.tables[record_type][record.id] = record
        return record

    def get(self, record_type, record_id):
        return self.tables[record_type].get(record_id)

    def all(self, record_type):
        return list(self.tables[record_type].values())

    def fail_on(self, method, exc, when=None):
        """Make ``method`` raise ``exc`` (only for args where ``when(*args)`` is true)."""
        self._failures[method] = (exc, when)

    async def _enter(self, method, *args):
        self.calls.append((method, args))
        await asyncio.sleep(0)
        if method in self._failures:
            exc, when = self._failures[method]
            if when is None or when(*args):
                raise exc

    def _find(self, record_type, where):
        try:
            rows = [r for r in self.tables[record_type].values() if _matches(r, where)]
        except ValueError as exc:
            raise DataAccessError(record_type.__name__, where, cause=exc) from exc
        return [replace(r) for r in sorted(rows, key=lambda r: r.id)]

    def _get(self, record_type, record_id):
        record = self.tables[record_type].get(record_id)
        if record is None:
            missing = NotFoundError(record_type.__name__, record_id)
            raise DataAccessError(record_type.__name__, {"id": record_id}, cause=missing)
        return replace(record)

    # ── DataAccess ────────────────────────────────────────────────────

    async def get_story(self, story_id):
        await self._enter("get_story", story_id)
        return self._get(records.Story, story_id)

    async def get_task(self, task_id):
        await self._enter("get_task", task_id)
        return self._get(records.Task, task_id)

    async def get_phases(self, where):
        await self._enter("get_phases", where)
        return sorted(self._find(records.Phase, where), key=lambda p: (p.order, p.id))

    async def get_tasks(self, where):
        await self._enter("get_tasks", where)
        return self._find(records.Task, where)

    async def get_users(self, where):
        await self._enter("get_users", where)
        return self._find(records.User, where)

    async def get_types(self, where):
        await self._enter("get_types", where)
        return self._find(records.TaskType, where)

    async def get_milestones(self, where):
        await self._enter("get_milestones", where)
        return self._find(records.Milestone, where)

    async def get_phase_durations(self, where):
        await self._enter("get_phase_durations", where)
        return self._find(records.PhaseDuration, where)

    # ── Persistence ───────────────────────────────────────────────────

    async def create(self, record):
        await self._enter("create", record)
        return replace(self.add(replace(record, id=None)))

    async def update(self, record_type, where, patch):
        await self._enter("update", record_type, where, patch)
        updated = []
        for record in self._find(record_type, where):
            record = replace(record, **patch)
            self.tables[record_type][record.id] = record
            updated.append(replace(record))
        return updated

    async def save(self, record):
        await self._enter("save", record)
        if record.id not in self.tables[type(record)]:
            raise PersistenceError("save", type(record).__name__,
                                   cause=NotFoundError(type(record).__name__, record.id))
        self.tables[type(record)][record.id] = replace(record)


class RecordingNotifier(ChangeNotifier):
    """Keeps every published event as (verb, entity_type, entity_id, payload)."""

    def __init__(self):
        self.events = []

    async def publish_create(self, entity_type, payload):
        self.events.append(("create", entity_type, payload.get("id"), payload))

    async def publish_update(self, entity_type, entity_id, payload):
        self.events.append(("update", entity_type, entity_id, payload))

    async def publish_destroy(self, entity_type, entity_id):
        self.events.append(("destroy", entity_type, entity_id, None))

    def of(self, entity_type):
        return [e for e in self.events if e[1] == entity_type]


class StaticAccess(AccessControl):
    """Grants ``role`` to the users in ``allowed`` (everyone when None)."""

    def __init__(self, role="editor", allowed=None):
        self.role = role
        self.allowed = allowed

    async def has_access(self, user, story_id):
        await asyncio.sleep(0)
        if self.allowed is not None and user.id not in self.allowed:
            raise AccessDeniedError(user.id, story_id)
        return self.role
