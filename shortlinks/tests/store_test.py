from datetime import datetime, timedelta

import pytest

from shortlinks.core.errors import KeywordConflict, StorageUnavailable
from shortlinks.db.Models.models import Base, ClickLog, Option
from shortlinks.db.store import ClickEntry


@pytest.fixture(params=["sql", "memory"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


def test_insert_then_get(store):
    now = datetime(2024, 5, 1, 12, 0, 0)
    link = store.insert("abc", "https://example.com", "Example", now, "127.0.0.1")

    assert link.keyword == "abc"
    assert store.exists("abc")
    stored = store.get("abc")
    assert stored.url == "https://example.com"
    assert stored.title == "Example"
    assert stored.timestamp == now
    assert stored.clicks == 0


def test_duplicate_keyword_raises_conflict(store):
    store.insert("abc", "https://example.com", "", datetime.utcnow(), "127.0.0.1")
    with pytest.raises(KeywordConflict) as exc_info:
        store.insert("abc", "https://other.example.com", "", datetime.utcnow(), "127.0.0.1")

    assert exc_info.value.keyword == "abc"
    assert store.get("abc").url == "https://example.com"


def test_keywords_are_case_sensitive(store):
    store.insert("abc", "https://lower.example.com", "", datetime.utcnow(), "127.0.0.1")
    store.insert("ABC", "https://upper.example.com", "", datetime.utcnow(), "127.0.0.1")

    assert store.get("abc").url == "https://lower.example.com"
    assert store.get("ABC").url == "https://upper.example.com"


def test_increment_clicks(store):
    store.insert("abc", "https://example.com", "", datetime.utcnow(), "127.0.0.1")

    assert store.increment_clicks("abc") == 1
    assert store.increment_clicks("abc") == 1
    assert store.increment_clicks("missing") == 0
    assert store.get("abc").clicks == 2
    assert store.total_clicks() == 2


def test_get_by_url_returns_oldest(store):
    base = datetime(2024, 1, 1)
    store.insert("new", "https://example.com", "", base + timedelta(days=1), "127.0.0.1")
    store.insert("old", "https://example.com", "", base, "127.0.0.1")

    assert store.get_by_url("https://example.com").keyword == "old"
    assert store.get_by_url("https://nowhere.example.com") is None


def test_update_and_rename(store):
    store.insert("abc", "https://example.com", "", datetime.utcnow(), "127.0.0.1")
    store.insert("xyz", "https://example.org", "", datetime.utcnow(), "127.0.0.1")

    assert store.update("abc", "https://example.net", "def", "Net") == 1
    assert store.get("abc") is None
    assert store.get("def").url == "https://example.net"

    with pytest.raises(KeywordConflict):
        store.update("def", "https://example.net", "xyz", "Net")
    assert store.update("missing", "https://example.net", "missing", "") == 0


def test_delete(store):
    store.insert("abc", "https://example.com", "", datetime.utcnow(), "127.0.0.1")

    assert store.delete("abc") == 1
    assert store.delete("abc") == 0
    assert not store.exists("abc")


def test_list_is_newest_first(store):
    base = datetime(2024, 1, 1)
    for i in range(5):
        store.insert(str(i), f"https://example.com/{i}", "", base + timedelta(minutes=i), "127.0.0.1")

    total, links = store.list(skip=1, limit=2)

    assert total == 5
    assert [l.keyword for l in links] == ["3", "2"]


def test_last_created_at(store):
    base = datetime(2024, 1, 1)
    store.insert("a", "https://example.com/a", "", base, "10.0.0.1")
    store.insert("b", "https://example.com/b", "", base + timedelta(hours=1), "10.0.0.1")

    assert store.last_created_at("10.0.0.1") == base + timedelta(hours=1)
    assert store.last_created_at("10.0.0.2") is None


def test_next_id_survives_values_beyond_64_bits(store):
    assert store.get_next_id() == 1
    store.set_next_id(2**70 + 3)
    assert store.get_next_id() == 2**70 + 3


def test_sql_click_log_entry(sql_store, db_session):
    entry = ClickEntry(
        keyword="abc",
        click_time=datetime.utcnow(),
        referrer="direct",
        user_agent="pytest",
        ip_address="1.2.3.4",
        country_code="",
    )
    assert sql_store.append_click(entry) == 1

    row = db_session.query(ClickLog).one()
    assert row.shorturl == "abc"
    assert row.user_agent == "pytest"


def test_install_seeds_counter(db_session):
    option = db_session.query(Option).filter(Option.key == "next_id").one()
    assert option.value == "1"


def test_missing_tables_surface_as_storage_unavailable(sql_store, db_session):
    Base.metadata.drop_all(bind=db_session.get_bind())

    with pytest.raises(StorageUnavailable) as exc_info:
        sql_store.get("abc")
    assert exc_info.value.code == "error:db"
