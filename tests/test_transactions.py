"""Tests for mutations and their audit rows committing or rolling back together."""

import logging
import re
from datetime import datetime

import pytest
from sqlalchemy import func

from wms import audit, crud, keys, models, schemas
from wms.exceptions import InternalError

SHIPMENT_ID = "IN20250601093015123"


def _item_create(**overrides):
    data = {
        "sku": "WIDGET-1",
        "name": "Widget",
        "category": "Parts",
        "quantity": 5,
        "location": "A1",
        "condition": "New",
    }
    data.update(overrides)
    return schemas.ItemCreate(**data)


def _count(db, model):
    return db.query(func.count()).select_from(model).scalar()


@pytest.fixture()
def broken_audit(monkeypatch):
    """Make every audit row violate the description NOT NULL constraint at commit."""

    def _log_activity(db, action_type, description, item_sku=None, user_id=None, commit=True):
        entry = models.ActivityLog(
            action_type=action_type.value,
            description=None,
            item_sku=item_sku,
            user_id=user_id,
            timestamp=datetime.utcnow(),
        )
        db.add(entry)
        if commit:
            db.commit()
        return entry

    monkeypatch.setattr(audit, "log_activity", _log_activity)


class TestCreateItemRace:
    def test_sku_taken_between_check_and_commit_is_resolved_again(self, db, add_item, monkeypatch):
        add_item("WIDGET-1")
        db.expunge_all()

        real_item_exists = keys.item_exists
        calls = []

        def _item_exists(session, sku):
            calls.append(sku)
            # The first check misses the stored row, like a concurrent insert would
            if len(calls) == 1:
                return False
            return real_item_exists(session, sku)

        monkeypatch.setattr(keys, "item_exists", _item_exists)

        item = crud.create_item(db, _item_create())
        assert re.fullmatch(r"WIDGET-1-\d{4}", item.sku)
        assert _count(db, models.Item) == 2
        assert _count(db, models.ActivityLog) == 1
        assert db.query(models.ActivityLog.item_sku).scalar() == item.sku


class TestAuditFailureRollsBack:
    def test_create_item_leaves_nothing(self, db, broken_audit, caplog):
        caplog.set_level(logging.ERROR, logger="wms.crud")
        with pytest.raises(InternalError):
            crud.create_item(db, _item_create())

        assert _count(db, models.Item) == 0
        assert _count(db, models.ActivityLog) == 0
        assert any(record.exc_info for record in caplog.records)

    def test_update_item_keeps_old_values(self, db, add_item, broken_audit):
        add_item("WIDGET-1", quantity=5)
        update = schemas.ItemUpdate(
            name="Renamed", category="Parts", quantity=99, location="B2", condition="New"
        )
        with pytest.raises(InternalError):
            crud.update_item(db, "WIDGET-1", update)

        db.expire_all()
        item = crud.get_item(db, "WIDGET-1")
        assert item.quantity == 5
        assert item.name == "Item WIDGET-1"

    def test_delete_item_keeps_the_item(self, db, add_item, broken_audit):
        add_item("WIDGET-1")
        with pytest.raises(InternalError):
            crud.delete_item(db, "WIDGET-1")

        assert crud.get_item(db, "WIDGET-1") is not None
        assert _count(db, models.ActivityLog) == 0

    def test_shipment_mutations_log_the_failure(self, client, db, monkeypatch, caplog):
        response = client.post("/api/Shipments", json={
            "id": SHIPMENT_ID,
            "type": "Inbound",
            "partnerName": "Acme Supplies",
            "eta": "2025-06-10T12:00:00",
        })
        assert response.status_code == 201
        before = _count(db, models.ActivityLog)

        broken = {}

        def _log_activity(session, action_type, description, item_sku=None, user_id=None, commit=True):
            entry = models.ActivityLog(action_type=action_type.value, description=None, timestamp=datetime.utcnow())
            session.add(entry)
            broken["called"] = True
            return entry

        monkeypatch.setattr(audit, "log_activity", _log_activity)
        caplog.set_level(logging.ERROR, logger="wms.crud")

        with pytest.raises(InternalError):
            crud.complete_shipment(db, SHIPMENT_ID)
        with pytest.raises(InternalError):
            crud.delete_shipment(db, SHIPMENT_ID)

        assert broken["called"]
        failures = [record for record in caplog.records if record.exc_info]
        assert len(failures) == 2
        assert crud.get_shipment(db, SHIPMENT_ID).status == "Pending"
        assert _count(db, models.ActivityLog) == before
