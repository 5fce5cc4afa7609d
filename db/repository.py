"""
Repository layer for search history and favorites.
All functions use SQLAlchemy Core (insert/select/update/delete), not ORM.

Design principles:
- Functions do NOT commit - caller commits for transaction control
- Rows are returned as plain dicts
"""

import json
from typing import Any

from sqlalchemy import and_, delete, desc, func, insert, select, update
from sqlalchemy.orm import Session

from models.search_result import DIYSearchResult
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_HISTORY_ITEMS = 50
MAX_FAVORITES = 100


# ============================================================================
# SEARCH HISTORY
# ============================================================================


def add_to_history(
    db: Session,
    query: str,
    resource_type: str,
    content_type: str,
    result_count: int,
    project_id: str | None = None,
    project_title: str | None = None,
) -> int:
    """
    Record a search, replacing an older entry for the same query/type combination.

    Keeps only the newest MAX_HISTORY_ITEMS entries.

    Returns:
        int: history entry id

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    history = get_table("search_history")

    db.execute(
        delete(history).where(
            and_(
                history.c.query == query,
                history.c.resource_type == resource_type,
                history.c.content_type == content_type,
            )
        )
    )

    entry_id = db.execute(
        insert(history)
        .values(
            query=query,
            resource_type=resource_type,
            content_type=content_type,
            result_count=result_count,
            project_id=project_id,
            project_title=project_title,
        )
        .returning(history.c.id)
    ).scalar_one()

    keep_ids = select(history.c.id).order_by(desc(history.c.id)).limit(MAX_HISTORY_ITEMS)
    db.execute(delete(history).where(history.c.id.not_in(keep_ids.scalar_subquery())))

    logger.debug(f"Saved search history entry {entry_id}: '{query}'")
    return entry_id


def get_search_history(db: Session, limit: int | None = None) -> list[dict[str, Any]]:
    """Most recent searches first."""
    from db.tables import get_table

    history = get_table("search_history")

    stmt = select(history).order_by(desc(history.c.id))
    if limit:
        stmt = stmt.limit(limit)

    return [dict(row._mapping) for row in db.execute(stmt).fetchall()]


def get_project_history(db: Session, project_id: str, limit: int = 10) -> list[dict[str, Any]]:
    from db.tables import get_table

    history = get_table("search_history")

    stmt = (
        select(history)
        .where(history.c.project_id == project_id)
        .order_by(desc(history.c.id))
        .limit(limit)
    )
    return [dict(row._mapping) for row in db.execute(stmt).fetchall()]


def get_popular_searches(db: Session, limit: int = 5) -> list[dict[str, Any]]:
    """
    Most frequent queries in the retained history.

    Returns:
        list: [{"query": str, "count": int}, ...] ordered by count descending
    """
    from db.tables import get_table

    history = get_table("search_history")

    count = func.count(history.c.id).label("count")
    stmt = (
        select(history.c.query, count)
        .group_by(history.c.query)
        .order_by(desc(count), desc(func.max(history.c.id)))
        .limit(limit)
    )
    return [{"query": row.query, "count": row.count} for row in db.execute(stmt).fetchall()]


def remove_from_history(db: Session, entry_id: int) -> None:
    from db.tables import get_table

    history = get_table("search_history")
    db.execute(delete(history).where(history.c.id == entry_id))


def clear_history(db: Session) -> None:
    from db.tables import get_table

    db.execute(delete(get_table("search_history")))
    logger.info("Cleared search history")


# ============================================================================
# FAVORITES
# ============================================================================


def _favorite_row(row: Any) -> dict[str, Any]:
    data = dict(row._mapping)
    data["search_result"] = DIYSearchResult.from_dict(json.loads(data["search_result"]))
    data["tags"] = json.loads(data["tags"] or "[]")
    return data


def add_to_favorites(
    db: Session,
    search_result: DIYSearchResult,
    project_id: str | None = None,
    project_title: str | None = None,
    tags: list[str] | None = None,
    notes: str | None = None,
) -> int:
    """
    Favorite a result. An existing favorite with the same URL is updated in place.

    Keeps only the newest MAX_FAVORITES favorites.

    Returns:
        int: favorite id

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    favorites = get_table("search_favorites")
    tags_json = json.dumps(tags or [])

    existing_id = db.execute(
        select(favorites.c.id).where(favorites.c.url == search_result.url)
    ).scalar_one_or_none()

    if existing_id is not None:
        db.execute(
            update(favorites)
            .where(favorites.c.id == existing_id)
            .values(tags=tags_json, notes=notes, project_id=project_id, project_title=project_title)
        )
        return existing_id

    favorite_id = db.execute(
        insert(favorites)
        .values(
            url=search_result.url,
            search_result=json.dumps(search_result.to_dict()),
            project_id=project_id,
            project_title=project_title,
            tags=tags_json,
            notes=notes,
        )
        .returning(favorites.c.id)
    ).scalar_one()

    keep_ids = select(favorites.c.id).order_by(desc(favorites.c.id)).limit(MAX_FAVORITES)
    db.execute(delete(favorites).where(favorites.c.id.not_in(keep_ids.scalar_subquery())))

    logger.debug(f"Saved favorite {favorite_id}: {search_result.url}")
    return favorite_id


def get_favorites(db: Session, limit: int | None = None) -> list[dict[str, Any]]:
    """Newest favorites first, with ``search_result`` decoded to DIYSearchResult."""
    from db.tables import get_table

    favorites = get_table("search_favorites")

    stmt = select(favorites).order_by(desc(favorites.c.id))
    if limit:
        stmt = stmt.limit(limit)
    return [_favorite_row(row) for row in db.execute(stmt).fetchall()]


def is_favorited(db: Session, url: str) -> bool:
    from db.tables import get_table

    favorites = get_table("search_favorites")
    return db.execute(select(favorites.c.id).where(favorites.c.url == url)).first() is not None


def remove_from_favorites_by_url(db: Session, url: str) -> None:
    from db.tables import get_table

    favorites = get_table("search_favorites")
    db.execute(delete(favorites).where(favorites.c.url == url))
