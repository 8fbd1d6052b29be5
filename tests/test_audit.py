"""Tests for actor name resolution and activity log writes."""

import pytest

from wms import audit, cache, models
from wms.schemas import ActionType


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture()
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "redis_client", fake)
    return fake


class TestResolveUserName:
    def test_no_actor_is_system(self, db):
        assert audit.resolve_user_name(db, None) == "System"

    def test_non_numeric_id_is_unknown(self, db):
        assert audit.resolve_user_name(db, "abc") == "Unknown User"

    def test_missing_worker_is_unknown(self, db):
        assert audit.resolve_user_name(db, "999") == "Unknown User"

    def test_worker_id_resolves_to_username(self, db, add_worker):
        worker = add_worker("mlopez")
        assert audit.resolve_user_name(db, str(worker.id)) == "mlopez"

    def test_name_is_cached(self, db, add_worker, fake_redis):
        worker = add_worker("mlopez")
        worker_id = str(worker.id)
        assert audit.resolve_user_name(db, worker_id) == "mlopez"
        assert cache.worker_name_key(worker_id) in fake_redis.store

        db.delete(worker)
        db.commit()
        assert audit.resolve_user_name(db, worker_id) == "mlopez"

    def test_cache_disabled_falls_back_to_store(self, db, add_worker):
        assert cache.redis_client is None
        worker = add_worker("mlopez")
        assert audit.resolve_user_name(db, str(worker.id)) == "mlopez"


class TestLogActivity:
    def test_commit_persists_entry(self, db):
        entry = audit.log_activity(db, ActionType.INFO, "Stocktake reminder sent")
        assert entry.id is not None
        assert entry.action_type == "Info"
        assert entry.user_name == "System"
        assert entry.user_id is None

    def test_entry_records_worker(self, db, add_worker):
        worker = add_worker("mlopez")
        entry = audit.log_activity(db, ActionType.MOVE, "Moved", item_sku="A-1", user_id=str(worker.id))
        assert entry.user_name == "mlopez"
        assert entry.item_sku == "A-1"

    def test_deferred_entry_is_discarded_with_rollback(self, db):
        audit.log_activity(db, ActionType.ADD, "Added item", item_sku="A-1", commit=False)
        db.rollback()
        assert db.query(models.ActivityLog).count() == 0

    def test_deferred_entry_is_committed_by_caller(self, db):
        audit.log_activity(db, ActionType.ADD, "Added item", item_sku="A-1", commit=False)
        db.commit()
        assert db.query(models.ActivityLog).count() == 1
