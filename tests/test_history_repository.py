"""
Tests for the search history and favorites repository against in-memory SQLite.
"""

import pytest
from sqlalchemy.orm import sessionmaker

from db import repository
from db.engine import create_db_engine
from db.history_store import SearchHistoryStore
from db.repository import (
    add_to_favorites,
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
from db.session import session_scope
from db.tables import create_tables, get_table


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite+pysqlite:///:memory:")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine)()
    yield session
    session.close()


def _add(db, query, resource_type="tutorial", content_type="mixed", project_id=None):
    return add_to_history(db, query, resource_type, content_type, 5, project_id=project_id)


@pytest.mark.integration
def test_history_is_newest_first(db):
    _add(db, "fix faucet")
    _add(db, "paint trim")
    db.commit()

    entries = get_search_history(db)

    assert [e["query"] for e in entries] == ["paint trim", "fix faucet"]
    assert entries[0]["result_count"] == 5
    assert entries[0]["created_at"] is not None


@pytest.mark.integration
def test_repeat_search_replaces_older_entry(db):
    _add(db, "fix faucet")
    _add(db, "paint trim")
    _add(db, "fix faucet")
    _add(db, "fix faucet", content_type="video")

    queries = [(e["query"], e["content_type"]) for e in get_search_history(db)]

    assert queries == [("fix faucet", "video"), ("fix faucet", "mixed"), ("paint trim", "mixed")]


@pytest.mark.integration
def test_history_is_trimmed(db, monkeypatch):
    monkeypatch.setattr(repository, "MAX_HISTORY_ITEMS", 3)

    for i in range(5):
        _add(db, f"query {i}")

    assert [e["query"] for e in get_search_history(db)] == ["query 4", "query 3", "query 2"]


@pytest.mark.integration
def test_project_history_and_limit(db):
    _add(db, "deck stain", project_id="abc12345")
    _add(db, "deck boards", project_id="abc12345")
    _add(db, "faucet", project_id="other")

    assert [e["query"] for e in get_project_history(db, "abc12345")] == ["deck boards", "deck stain"]
    assert len(get_search_history(db, limit=2)) == 2


@pytest.mark.integration
def test_popular_searches(db):
    _add(db, "fix faucet", content_type="video")
    _add(db, "fix faucet", content_type="article")
    _add(db, "paint trim")

    popular = get_popular_searches(db)

    assert popular[0] == {"query": "fix faucet", "count": 2}
    assert popular[1] == {"query": "paint trim", "count": 1}


@pytest.mark.integration
def test_remove_and_clear_history(db):
    first = _add(db, "fix faucet")
    _add(db, "paint trim")

    remove_from_history(db, first)
    assert [e["query"] for e in get_search_history(db)] == ["paint trim"]

    clear_history(db)
    assert get_search_history(db) == []


@pytest.mark.integration
def test_favorites_round_trip(db, make_result):
    result = make_result("https://www.bobvila.com/faucet", tags=["tutorial", "plumbing"])

    favorite_id = add_to_favorites(db, result, project_title="Bathroom", tags=["sink"], notes="try first")
    db.commit()

    favorites = get_favorites(db)
    assert len(favorites) == 1
    assert favorites[0]["id"] == favorite_id
    assert favorites[0]["search_result"] == result
    assert favorites[0]["tags"] == ["sink"]
    assert favorites[0]["notes"] == "try first"
    assert is_favorited(db, result.url) is True


@pytest.mark.integration
def test_favoriting_same_url_updates_in_place(db, make_result):
    result = make_result("https://www.bobvila.com/faucet")

    first_id = add_to_favorites(db, result, notes="old")
    second_id = add_to_favorites(db, result, notes="new", tags=["keep"])

    favorites = get_favorites(db)
    assert first_id == second_id
    assert len(favorites) == 1
    assert favorites[0]["notes"] == "new"
    assert favorites[0]["tags"] == ["keep"]


@pytest.mark.integration
def test_remove_favorite(db, make_result):
    result = make_result("https://www.bobvila.com/faucet")
    add_to_favorites(db, result)

    remove_from_favorites_by_url(db, result.url)

    assert is_favorited(db, result.url) is False
    assert get_favorites(db) == []


@pytest.mark.unit
def test_get_table_rejects_unknown_name():
    with pytest.raises(ValueError, match="Unknown table name"):
        get_table("users")


@pytest.mark.integration
def test_history_store_commits_each_write(engine):
    factory = sessionmaker(bind=engine)
    store = SearchHistoryStore(session_factory=factory)

    store.record_search("fix faucet", "tutorial", "mixed", 4, project_id="abc12345", project_title="Bath")

    session = factory()
    try:
        entries = get_search_history(session)
    finally:
        session.close()
    assert len(entries) == 1
    assert entries[0]["project_title"] == "Bath"
    assert entries[0]["result_count"] == 4


@pytest.mark.integration
def test_history_store_creates_missing_tables():
    engine = create_db_engine("sqlite+pysqlite:///:memory:")
    factory = sessionmaker(bind=engine)

    SearchHistoryStore(session_factory=factory).record_search("paint trim", "tutorial", "mixed", 2)

    session = factory()
    try:
        assert [e["query"] for e in get_search_history(session)] == ["paint trim"]
    finally:
        session.close()
        engine.dispose()


@pytest.mark.integration
def test_session_scope_rolls_back_on_error(engine):
    factory = sessionmaker(bind=engine)

    with pytest.raises(RuntimeError):
        with session_scope(factory) as session:
            _add(session, "fix faucet")
            raise RuntimeError("abort")

    with session_scope(factory) as session:
        assert get_search_history(session) == []
