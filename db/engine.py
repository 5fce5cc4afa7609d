"""
Engine for the search history store.

SQLite by default (a file next to the working directory); HISTORY_DATABASE_URL
may point at any SQLAlchemy URL. The engine is created on first use so that
importing the db package never touches the filesystem or network.
"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from config.config import Config
from utils.logger import get_logger

logger = get_logger(__name__)

_ENGINE: Engine | None = None


def get_database_url() -> str:
    return Config().HISTORY_DATABASE_URL


def create_db_engine(database_url: str | None = None) -> Engine:
    """
    Create an engine for ``database_url`` (defaults to the configured URL).

    SQLite connections may be used from the worker thread that
    ``search_sync`` spins up, so same-thread checks are disabled; an
    in-memory database shares one connection so every session sees it.
    """
    database_url = database_url or get_database_url()
    backend = database_url.split(":", 1)[0]

    kwargs: dict = {"echo": False}
    if backend.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.endswith("://"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    logger.info("Creating history database engine", extra={"extra_fields": {"backend": backend}})
    return create_engine(database_url, **kwargs)


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first call."""
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = create_db_engine()
    return _ENGINE
