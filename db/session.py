"""Session helpers for the search history store."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from db.engine import get_engine

# Unbound until the first session is requested
_SessionFactory = sessionmaker(autocommit=False, autoflush=False)


def SessionLocal() -> Session:
    _SessionFactory.configure(bind=get_engine())
    return _SessionFactory()


@contextmanager
def session_scope(session_factory: Callable[[], Session] = SessionLocal) -> Iterator[Session]:
    """
    One unit of work: commit on success, roll back and re-raise on error.

    Usage:
        with session_scope() as session:
            add_to_history(session, ...)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
