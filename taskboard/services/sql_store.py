"""SQLAlchemy-backed DataAccess and Persistence collaborators.

Rows are converted to ``taskboard.core.records`` dataclasses on the way
out and back on the way in. Each write commits on its own: the split
workflow has no enclosing transaction, so a write that succeeded stays
persisted even when a later step fails.

The methods are coroutines to satisfy the collaborator contracts; the
database calls themselves are synchronous and run on the event loop's
thread, inside the caller's application context.

Driver errors that SQLAlchemy does not wrap (``OverflowError`` for an id
outside the INTEGER range) are reported like any other failure: reads raise
``DataAccessError``, writes ``PersistenceError``. An out-of-range id on a
single-record read is a missing record.
"""

import logging
from dataclasses import fields
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from taskboard.core import records
from taskboard.core.exceptions import DataAccessError, NotFoundError, PersistenceError
from taskboard.models import db
from taskboard.models import board as orm
from taskboard.models import user as orm_user
from taskboard.services.collaborators import DataAccess, Persistence

logger = logging.getLogger(__name__)

# record class -> ORM model
MODEL_FOR_RECORD = {
    records.Story: orm.Story,
    records.Task: orm.Task,
    records.Phase: orm.Phase,
    records.PhaseDuration: orm.PhaseDuration,
    records.TaskType: orm.TaskType,
    records.Milestone: orm.Milestone,
    records.User: orm_user.User,
}


def _as_utc(value):
    # SQLite drops tzinfo on the way back; stored values are always UTC.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_record(row, record_type):
    """Build a record from an ORM row, field-for-field."""
    return record_type(**{f.name: _as_utc(getattr(row, f.name)) for f in fields(record_type)})


def _apply_where(query, model, where):
    for key, value in (where or {}).items():
        column = getattr(model, key, None)
        if column is None or key not in model.__table__.columns:
            raise ValueError(f"Unknown filter field {key!r} for {model.__tablename__}")
        if isinstance(value, (list, tuple, set, frozenset)):
            query = query.filter(column.in_(list(value)))
        elif value is None:
            query = query.filter(column.is_(None))
        else:
            query = query.filter(column == value)
    return query


class SqlDataAccess(DataAccess):
    """Reads through the Flask-SQLAlchemy session."""

    def _find(self, record_type, where, order_by=None):
        model = MODEL_FOR_RECORD[record_type]
        try:
            query = _apply_where(model.query, model, where)
            query = query.order_by(*(order_by or (model.id,)))
            return [to_record(row, record_type) for row in query.all()]
        except (SQLAlchemyError, ValueError, OverflowError) as exc:
            logger.warning("Read %s where=%r failed: %s", model.__name__, where, exc)
            raise DataAccessError(model.__name__, where, cause=exc) from exc

    def _get(self, record_type, pk):
        model = MODEL_FOR_RECORD[record_type]
        try:
            row = db.session.get(model, pk)
        except OverflowError as exc:
            # ids beyond the INTEGER range cannot exist
            missing = NotFoundError(model.__name__, pk)
            raise DataAccessError(model.__name__, {"id": pk}, cause=missing) from exc
        except SQLAlchemyError as exc:
            raise DataAccessError(model.__name__, {"id": pk}, cause=exc) from exc
        if row is None:
            missing = NotFoundError(model.__name__, pk)
            raise DataAccessError(model.__name__, {"id": pk}, cause=missing) from missing
        return to_record(row, record_type)

    async def get_story(self, story_id):
        return self._get(records.Story, story_id)

    async def get_task(self, task_id):
        return self._get(records.Task, task_id)

    async def get_phases(self, where):
        return self._find(records.Phase, where, order_by=(orm.Phase.order, orm.Phase.id))

    async def get_tasks(self, where):
        return self._find(records.Task, where)

    async def get_users(self, where):
        return self._find(records.User, where)

    async def get_types(self, where):
        return self._find(records.TaskType, where,
                          order_by=(orm.TaskType.order, orm.TaskType.id))

    async def get_milestones(self, where):
        return self._find(records.Milestone, where)

    async def get_phase_durations(self, where):
        return self._find(records.PhaseDuration, where)


class SqlPersistence(Persistence):
    """Writes through the Flask-SQLAlchemy session, one commit per call."""

    def _fail(self, operation, name, exc):
        db.session.rollback()
        logger.warning("%s %s failed: %s", operation, name, exc)
        return PersistenceError(operation, name, cause=exc)

    async def create(self, record):
        record_type = type(record)
        model = MODEL_FOR_RECORD[record_type]
        values = {f.name: getattr(record, f.name) for f in fields(record)}
        for key in ("id", "created_at", "updated_at"):
            if values.get(key) is None:
                values.pop(key, None)
        try:
            row = model(**values)
            db.session.add(row)
            db.session.commit()
        except (SQLAlchemyError, OverflowError) as exc:
            raise self._fail("create", model.__name__, exc) from exc
        return to_record(row, record_type)

    async def update(self, record_type, where, patch):
        model = MODEL_FOR_RECORD[record_type]
        try:
            rows = _apply_where(model.query, model, where).order_by(model.id).all()
            for row in rows:
                for key, value in patch.items():
                    setattr(row, key, value)
            db.session.commit()
        except (SQLAlchemyError, ValueError, OverflowError) as exc:
            raise self._fail("update", model.__name__, exc) from exc
        return [to_record(row, record_type) for row in rows]

    async def save(self, record):
        record_type = type(record)
        model = MODEL_FOR_RECORD[record_type]
        try:
            row = db.session.get(model, record.id)
            if row is None:
                raise NotFoundError(model.__name__, record.id)
            for f in fields(record):
                if f.name in ("id", "created_at", "updated_at"):
                    continue
                setattr(row, f.name, getattr(record, f.name))
            db.session.commit()
        except (SQLAlchemyError, NotFoundError, OverflowError) as exc:
            raise self._fail("save", model.__name__, exc) from exc
