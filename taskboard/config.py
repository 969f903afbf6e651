"""
Taskboard
Configuration classes for the Flask App Factory.

The class is picked by name (``APP_ENV``, default "development") and
instantiated before loading, so environment checks in ``__init__`` run:

    app.config.from_object(config[config_name]())

Environment variables:
    DATABASE_URL       SQLAlchemy URL (postgres:// is accepted)
    TEST_DATABASE_URL  override for the testing config
    SECRET_KEY         required in production
    CORS_ORIGINS       comma-separated origins ("*" outside production)
    LOG_LEVEL          DEBUG / INFO / WARNING ...
    DEFAULT_TIMEZONE   IANA zone used when a user has none
    SPLIT_RATE_LIMIT   Flask-Limiter expression for the split endpoint
    RATELIMIT_ENABLED  "false" disables rate limiting
    REDIS_URL          rate limit storage (in-memory when unset)
    AUTO_CREATE_TABLES "false" skips db.create_all() at boot (default off in
                       production, where `flask db upgrade` owns the schema)
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'taskboard_dev.db')}"
_SQLITE_MEMORY = "sqlite:///:memory:"


def _database_url(raw):
    # SQLAlchemy 2.0 only knows the postgresql:// scheme
    return raw.replace("postgres://", "postgresql://", 1) if raw else None


def _flag(name, default):
    return os.getenv(name, default).strip().lower() not in ("0", "false", "no", "off")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MIGRATIONS_DIR = os.path.join(basedir, "migrations")
    AUTO_CREATE_TABLES = _flag("AUTO_CREATE_TABLES", "true")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "")
    DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

    # Flask-Limiter
    RATELIMIT_ENABLED = _flag("RATELIMIT_ENABLED", "true")
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    SPLIT_RATE_LIMIT = os.getenv("SPLIT_RATE_LIMIT", "30 per minute")

    # Requests slower than this are logged at WARNING
    SLOW_REQUEST_MS = 1000


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(os.getenv("DATABASE_URL", "")) or _SQLITE_DEV


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_MEMORY)
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url(os.getenv("DATABASE_URL", ""))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}
    AUTO_CREATE_TABLES = _flag("AUTO_CREATE_TABLES", "false")

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
