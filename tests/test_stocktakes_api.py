"""Integration tests for the Stocktakes endpoints via TestClient."""

import logging


def _create_stocktake(client, **overrides):
    payload = {"zone": "A", "shelf": "A-03", "counter": "mlopez"}
    payload.update(overrides)
    response = client.post("/api/Stocktakes", json=payload)
    assert response.status_code == 201, response.json()
    return response.json()


class TestStocktakeEndpoints:
    def test_create_starts_in_progress(self, client):
        stocktake = _create_stocktake(client, status="Completed")
        assert stocktake["status"] == "In Progress"
        assert stocktake["startedAt"] is not None
        assert stocktake["completedAt"] is None

    def test_missing_zone_is_rejected(self, client):
        response = client.post("/api/Stocktakes", json={"shelf": "A-03", "counter": "mlopez"})
        assert response.status_code == 400
        assert response.json()["field"] == "zone"

    def test_complete(self, client):
        stocktake = _create_stocktake(client)
        response = client.post(f"/api/Stocktakes/{stocktake['id']}/complete")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Completed"
        assert data["completedAt"] is not None

    def test_list_and_get(self, client):
        first = _create_stocktake(client)
        _create_stocktake(client, zone="B")
        assert len(client.get("/api/Stocktakes").json()) == 2
        assert client.get(f"/api/Stocktakes/{first['id']}").json()["zone"] == "A"

    def test_delete(self, client):
        stocktake = _create_stocktake(client)
        assert client.delete(f"/api/Stocktakes/{stocktake['id']}").status_code == 204
        assert client.get(f"/api/Stocktakes/{stocktake['id']}").status_code == 404

    def test_missing_stocktake(self, client):
        assert client.get("/api/Stocktakes/99").status_code == 404
        assert client.post("/api/Stocktakes/99/complete").status_code == 404
        assert client.delete("/api/Stocktakes/99").status_code == 404


class TestUpdateStocktakeEndpoint:
    def test_update_overwrites_fields(self, client):
        stocktake = _create_stocktake(client)
        response = client.put(
            f"/api/Stocktakes/{stocktake['id']}",
            json={"zone": "B", "shelf": "B-01", "counter": "jdoe", "notes": "Recount"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["zone"] == "B"
        assert data["counter"] == "jdoe"
        assert data["notes"] == "Recount"
        assert data["status"] == "In Progress"
        assert data["startedAt"] == stocktake["startedAt"]

    def test_completing_stamps_once_and_reopening_clears(self, client):
        stocktake = _create_stocktake(client)
        url = f"/api/Stocktakes/{stocktake['id']}"
        payload = {"zone": "A", "shelf": "A-03", "counter": "mlopez", "status": "completed"}

        completed = client.put(url, json=payload).json()
        assert completed["status"] == "Completed"
        assert completed["completedAt"] is not None

        again = client.put(url, json=dict(payload, notes="Checked")).json()
        assert again["completedAt"] == completed["completedAt"]

        reopened = client.put(url, json=dict(payload, status="In Progress")).json()
        assert reopened["completedAt"] is None

    def test_missing_field_is_rejected_before_id_check(self, client):
        stocktake = _create_stocktake(client)
        response = client.put(
            f"/api/Stocktakes/{stocktake['id']}",
            json={"id": stocktake["id"] + 1, "zone": "A", "counter": "mlopez"},
        )
        assert response.status_code == 400
        assert response.json()["field"] == "shelf"

    def test_id_mismatch_is_rejected(self, client):
        stocktake = _create_stocktake(client)
        response = client.put(
            f"/api/Stocktakes/{stocktake['id']}",
            json={"id": stocktake["id"] + 1, "zone": "A", "shelf": "A-03", "counter": "mlopez"},
        )
        assert response.status_code == 400
        assert response.json()["field"] == "id"

    def test_unknown_status_is_rejected(self, client):
        stocktake = _create_stocktake(client)
        response = client.put(
            f"/api/Stocktakes/{stocktake['id']}",
            json={"zone": "A", "shelf": "A-03", "counter": "mlopez", "status": "Paused"},
        )
        assert response.status_code == 400
        assert response.json()["field"] == "status"

    def test_update_missing_stocktake(self, client):
        response = client.put("/api/Stocktakes/99", json={"zone": "A", "shelf": "A-03", "counter": "mlopez"})
        assert response.status_code == 404


class TestStocktakeLogging:
    def test_complete_and_delete_are_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="wms.crud")
        stocktake = _create_stocktake(client)
        client.post(f"/api/Stocktakes/{stocktake['id']}/complete")
        client.delete(f"/api/Stocktakes/{stocktake['id']}")

        messages = [record.getMessage() for record in caplog.records if record.name == "wms.crud"]
        assert f"Completed stocktake {stocktake['id']}" in messages
        assert f"Deleted stocktake {stocktake['id']}" in messages
