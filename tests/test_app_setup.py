"""
Tests — configuration, logging formatters and collaborator wiring.
"""

import json
import logging

import pytest

from taskboard.config import ProductionConfig, _database_url
from taskboard.middleware.logging_config import JSONFormatter, ReadableFormatter
from taskboard.services import EXTENSION_KEY
from taskboard.services.access_control import ProjectMemberAccess
from taskboard.services.change_feed import ChangeFeedNotifier
from taskboard.services.sql_store import SqlDataAccess, SqlPersistence
from taskboard.services.time_format import ZoneInfoTimeFormatter


def _record(msg="split done", **extra):
    record = logging.LogRecord("taskboard.services.story_split", logging.INFO, __file__, 1,
                               msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestConfig:
    def test_testing_config(self, app):
        assert app.config["TESTING"] is True
        assert app.config["SQLALCHEMY_DATABASE_URI"] == "sqlite:///:memory:"
        assert app.config["RATELIMIT_ENABLED"] is False
        assert app.config["AUTO_CREATE_TABLES"] is True

    def test_postgres_scheme_is_rewritten(self):
        assert _database_url("postgres://u@h/db") == "postgresql://u@h/db"
        assert _database_url("") is None

    def test_production_requires_database_url(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", None)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            ProductionConfig()

    def test_production_requires_secret_key(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", "postgresql://u@h/db")
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(RuntimeError, match="SECRET_KEY"):
            ProductionConfig()


class TestCollaboratorWiring:
    def test_default_collaborators(self, app):
        collab = app.extensions[EXTENSION_KEY]

        assert isinstance(collab.data, SqlDataAccess)
        assert isinstance(collab.persistence, SqlPersistence)
        assert isinstance(collab.notifier, ChangeFeedNotifier)
        assert isinstance(collab.access, ProjectMemberAccess)
        assert isinstance(collab.time_formatter, ZoneInfoTimeFormatter)
        assert collab.time_formatter.default_timezone == "UTC"


class TestLogFormatters:
    def test_json_includes_context(self):
        line = json.loads(JSONFormatter().format(_record(story_id=4, sprint_id=0)))

        assert line["message"] == "split done"
        assert line["level"] == "INFO"
        assert line["story_id"] == 4
        assert line["sprint_id"] == 0
        assert "project_id" not in line

    def test_readable_shows_story(self):
        text = ReadableFormatter().format(_record(story_id=4, duration_ms=12.0))
        assert "split done story=4 [12ms]" in text


class TestTimeFormatter:
    def test_unknown_zone_falls_back(self):
        from datetime import datetime, timezone

        value = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        local = ZoneInfoTimeFormatter("Europe/Berlin").localize(value, "Mars/Olympus")
        assert local.hour == 13

    def test_naive_value_is_utc(self):
        from datetime import datetime

        local = ZoneInfoTimeFormatter().localize(datetime(2024, 7, 1, 12, 0), "Europe/Helsinki")
        assert local.hour == 15

    def test_non_datetime_is_none(self):
        assert ZoneInfoTimeFormatter().localize(None, "UTC") is None
