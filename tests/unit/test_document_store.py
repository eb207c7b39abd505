"""Contract tests run against both document store adapters."""

from datetime import UTC, datetime, timedelta

import pytest

from accessgate.adapters.memory_store import InMemoryDocumentStore
from accessgate.adapters.sqlite.document_store import SQLiteDocumentStore
from accessgate.adapters.sqlite.migrator import SQLiteMigrator
from accessgate.domain.errors import DuplicateKeyError, StoreUnavailableError

T0 = datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryDocumentStore()
    db_path = str(tmp_path / "access.db")
    SQLiteMigrator(db_path).run_migrations()
    return SQLiteDocumentStore(db_path)


def _code(identity: str, minutes: int, **extra):
    return {
        "identity": identity,
        "created_at": (T0 + timedelta(minutes=minutes)).isoformat(),
        "expires_at": (T0 + timedelta(minutes=minutes + 5)).isoformat(),
        "consumed": False,
        **extra,
    }


class TestReads:
    def test_find_one_missing(self, store):
        assert store.find_one("codes", {"identity": "a"}) is None

    def test_find_one_sorted(self, store):
        for minutes in (1, 3, 2):
            store.insert_one("codes", _code("a", minutes, id=f"c{minutes}"))

        latest = store.find_one("codes", {"identity": "a"}, sort_by="created_at", descending=True)
        earliest = store.find_one(
            "codes", {"identity": "a"}, sort_by="created_at", descending=False
        )

        assert latest["id"] == "c3"
        assert earliest["id"] == "c1"

    def test_operators_compare_datetimes(self, store):
        store.insert_one("codes", _code("a", 0, id="old"))
        store.insert_one("codes", _code("a", 10, id="new"))
        probe = T0 + timedelta(minutes=7)

        assert [d["id"] for d in store.find("codes", {"expires_at": {"$gt": probe}})] == ["new"]
        assert store.count("codes", {"expires_at": {"$lt": probe}}) == 1
        assert store.count("codes", {"expires_at": {"$gte": T0 + timedelta(minutes=5)}}) == 2

    def test_ne_and_in(self, store):
        store.insert_one("codes", _code("a", 0, id="1"))
        store.insert_one("codes", _code("b", 0, id="2"))
        store.insert_one("codes", _code("c", 0, id="3"))

        assert store.count("codes", {"identity": {"$ne": "a"}}) == 2
        assert store.count("codes", {"identity": {"$in": ["a", "c"]}}) == 2

    def test_collections_are_separate(self, store):
        store.insert_one("codes", _code("a", 0))
        assert store.count("tokens", {}) == 0


class TestWrites:
    def test_insert_unique_guard(self, store):
        store.insert_one("accounts", {"id": "1", "email": "a@x.com"}, unique_field="email")

        with pytest.raises(DuplicateKeyError):
            store.insert_one("accounts", {"id": "2", "email": "a@x.com"}, unique_field="email")

    def test_unique_guard_follows_updates(self, store):
        store.insert_one("codes", _code("a", 0, id="1", live_key="a"), unique_field="live_key")
        with pytest.raises(DuplicateKeyError):
            store.insert_one("codes", _code("a", 1, id="2", live_key="a"), unique_field="live_key")

        store.update_one("codes", {"id": "1"}, {"consumed": True, "live_key": None})

        store.insert_one("codes", _code("a", 1, id="2", live_key="a"), unique_field="live_key")
        assert store.count("codes", {"identity": "a"}) == 2

    def test_update_one_is_compare_and_set(self, store):
        store.insert_one("tokens", {"id": "t", "consumed": False})

        first = store.update_one("tokens", {"id": "t", "consumed": False}, {"consumed": True})
        second = store.update_one("tokens", {"id": "t", "consumed": False}, {"consumed": True})

        assert (first, second) == (1, 0)

    def test_update_encodes_datetimes(self, store):
        store.insert_one("tokens", {"id": "t", "consumed": False})
        store.update_one("tokens", {"id": "t"}, {"consumed_at": T0})

        assert store.find_one("tokens", {"id": "t"})["consumed_at"] == T0.isoformat()

    def test_update_many(self, store):
        for i in range(3):
            store.insert_one("codes", _code("a", i, id=str(i)))

        assert store.update_many("codes", {"identity": "a"}, {"consumed": True}) == 3
        assert store.count("codes", {"consumed": False}) == 0

    def test_upsert_inserts_then_updates(self, store):
        store.upsert("settings", {"key": "maintenance_mode"}, {"enabled": True})
        store.upsert("settings", {"key": "maintenance_mode"}, {"message": "hi"})

        docs = store.find("settings", {})
        assert len(docs) == 1
        assert docs[0] == {"key": "maintenance_mode", "enabled": True, "message": "hi"}

    def test_delete(self, store):
        for i in range(3):
            store.insert_one("codes", _code("a", i * 10, id=str(i)))

        assert store.delete_one("codes", {"id": "0"}) == 1
        assert store.delete_one("codes", {"id": "0"}) == 0
        assert store.delete_many("codes", {"expires_at": {"$lt": T0 + timedelta(minutes=20)}}) == 1
        assert store.count("codes", {}) == 1


def test_sqlite_unreachable_raises_unavailable(tmp_path):
    store = SQLiteDocumentStore(str(tmp_path / "missing" / "access.db"))

    with pytest.raises(StoreUnavailableError):
        store.find("codes", {})


def test_migrations_are_idempotent(tmp_path):
    db_path = str(tmp_path / "access.db")

    assert SQLiteMigrator(db_path).run_migrations() >= 1
    assert SQLiteMigrator(db_path).run_migrations() == 0
