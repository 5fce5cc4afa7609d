"""
SQLAlchemy Core table definitions for search history and favorites.

Unlike a reflected schema these tables are owned here; ``create_tables``
creates them if missing.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

from utils.logger import get_logger

logger = get_logger(__name__)

metadata = MetaData()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


search_history = Table(
    "search_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("query", String(500), nullable=False),
    Column("resource_type", String(20), nullable=False),
    Column("content_type", String(20), nullable=False),
    Column("project_id", String(64), index=True),
    Column("project_title", String(255)),
    Column("result_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
)

search_favorites = Table(
    "search_favorites",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("url", String(2048), nullable=False, unique=True),
    Column("search_result", Text, nullable=False),  # DIYSearchResult as JSON
    Column("project_id", String(64), index=True),
    Column("project_title", String(255)),
    Column("tags", Text, nullable=False, default="[]"),  # JSON list
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
)

TABLES = {table.name: table for table in (search_history, search_favorites)}


def get_table(name: str) -> Table:
    """
    Get a table by name.

    Raises:
        ValueError: If table name is not recognized
    """
    if name not in TABLES:
        raise ValueError(f"Unknown table name: {name}. Available tables: {', '.join(TABLES)}")
    return TABLES[name]


def create_tables(engine: Engine) -> None:
    metadata.create_all(engine)
    logger.info(f"Ensured {len(TABLES)} history tables exist")
