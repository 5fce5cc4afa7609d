"""
Database package for the search history store.
Provides SQLAlchemy engine, session management, table definitions, and repository functions.
"""

from db.engine import create_db_engine, get_engine
from db.history_store import SearchHistoryStore
from db.repository import (
    # Favorites
    add_to_favorites,
    # History
    add_to_history,
    clear_history,
    get_favorites,
    get_popular_searches,
    get_project_history,
    get_search_history,
    is_favorited,
    remove_from_favorites_by_url,
    remove_from_history,
)
from db.session import SessionLocal, session_scope
from db.tables import create_tables, get_table, metadata

__all__ = [
    "SearchHistoryStore",
    "SessionLocal",
    "add_to_favorites",
    "add_to_history",
    "clear_history",
    "create_db_engine",
    "create_tables",
    "get_engine",
    "get_favorites",
    "get_popular_searches",
    "get_project_history",
    "get_search_history",
    "get_table",
    "is_favorited",
    "metadata",
    "remove_from_favorites_by_url",
    "remove_from_history",
    "session_scope",
]
