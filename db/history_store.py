"""Session-per-write adapter that lets the orchestrator record successful searches."""

from collections.abc import Callable

from sqlalchemy.orm import Session

from db.repository import add_to_history
from db.session import SessionLocal, session_scope
from db.tables import create_tables
from utils.logger import get_logger

logger = get_logger(__name__)


class SearchHistoryStore:
    """Implements the SearchHistoryWriter protocol on top of the repository layer."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, ensure_tables: bool = True):
        self._session_factory = session_factory
        self._tables_ready = not ensure_tables

    def record_search(
        self,
        query: str,
        resource_type: str,
        content_type: str,
        result_count: int,
        project_id: str | None = None,
        project_title: str | None = None,
    ) -> None:
        with session_scope(self._session_factory) as session:
            if not self._tables_ready:
                create_tables(session.get_bind())
                self._tables_ready = True
            entry_id = add_to_history(
                session,
                query=query,
                resource_type=resource_type,
                content_type=content_type,
                result_count=result_count,
                project_id=project_id,
                project_title=project_title,
            )
        logger.debug(f"Recorded search history entry {entry_id}")
