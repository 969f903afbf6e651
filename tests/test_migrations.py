"""
Tests — Alembic migrations.

Covers:
    - Flask-Migrate registered on the app with the repo migrations directory
    - the initial revision builds the same tables, columns and indexes as the models
    - upgrade over an existing schema is a no-op, over a partial one it refuses
    - downgrade removes every table
"""

import importlib.util
import os

import pytest
import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from taskboard.config import basedir
from taskboard.models import db

VERSIONS_DIR = os.path.join(basedir, "migrations", "versions")
INITIAL_REVISION = "7c1e4a9b2d30"


def _load_revision(revision_id):
    filename = next(f for f in os.listdir(VERSIONS_DIR) if f.startswith(revision_id))
    module_spec = importlib.util.spec_from_file_location(
        f"taskboard_migration_{revision_id}", os.path.join(VERSIONS_DIR, filename))
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


def _run(engine, step):
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            step()


@pytest.fixture()
def revision():
    return _load_revision(INITIAL_REVISION)


@pytest.fixture()
def engine(tmp_path):
    eng = sa.create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    yield eng
    eng.dispose()


# ═════════════════════════════════════════════════════════════════════════════
# REGISTRATION
# ═════════════════════════════════════════════════════════════════════════════

def test_migrate_extension_registered(app):
    migrate_ext = app.extensions["migrate"]
    assert migrate_ext.db is db
    assert migrate_ext.directory == os.path.join(basedir, "migrations")


def test_initial_revision_is_the_root(revision):
    assert revision.revision == INITIAL_REVISION
    assert revision.down_revision is None


# ═════════════════════════════════════════════════════════════════════════════
# UPGRADE / DOWNGRADE
# ═════════════════════════════════════════════════════════════════════════════

class TestInitialRevision:
    def test_upgrade_matches_models(self, revision, engine):
        _run(engine, revision.upgrade)

        inspector = sa.inspect(engine)
        assert set(inspector.get_table_names()) == set(db.metadata.tables)
        for name, table in db.metadata.tables.items():
            migrated_columns = {c["name"] for c in inspector.get_columns(name)}
            assert migrated_columns == {c.name for c in table.columns}, name

            migrated_indexes = {ix["name"] for ix in inspector.get_indexes(name)}
            assert migrated_indexes == {ix.name for ix in table.indexes}, name

    def test_unique_membership(self, revision, engine):
        _run(engine, revision.upgrade)

        uniques = sa.inspect(engine).get_unique_constraints("project_users")
        assert [u["column_names"] for u in uniques] == [["project_id", "user_id"]]

    def test_upgrade_over_existing_schema_is_noop(self, revision, engine):
        db.metadata.create_all(engine)

        _run(engine, revision.upgrade)

        assert set(sa.inspect(engine).get_table_names()) == set(db.metadata.tables)

    def test_upgrade_over_partial_schema_refuses(self, revision, engine):
        db.metadata.tables["projects"].create(engine)

        with pytest.raises(RuntimeError, match="Partial taskboard schema"):
            _run(engine, revision.upgrade)

    def test_downgrade_drops_everything(self, revision, engine):
        _run(engine, revision.upgrade)
        _run(engine, revision.downgrade)

        assert sa.inspect(engine).get_table_names() == []
