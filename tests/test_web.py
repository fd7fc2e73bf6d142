#!/usr/bin/env python3
"""Tests for the Flask JSON API."""

import pytest

from web.app import app


@pytest.fixture
def client(shop):
    app.config["TESTING"] = True
    app.config["SERVICES"] = shop
    with app.test_client() as client:
        yield client
    app.config.pop("SERVICES", None)


class TestParts:
    """Tests for /parts endpoints."""

    def test_list(self, client):
        resp = client.get("/parts")
        assert resp.status_code == 200
        assert [p["partNumber"] for p in resp.get_json()] == ["OF-1", "BP-1"]

    def test_search(self, client):
        resp = client.get("/parts?q=brake")
        assert [p["name"] for p in resp.get_json()] == ["Brake pads"]

    def test_create(self, client, shop):
        resp = client.post(
            "/parts",
            json={"partNumber": "SP-1", "name": "Spark plug", "price": 8, "cost": 3,
                  "stock": 4, "vendorId": 1},
        )
        assert resp.status_code == 201
        assert resp.get_json()["id"] == 3
        assert shop.records.get_vendor(1).credit == 112

    def test_create_duplicate(self, client):
        resp = client.post("/parts", json={"partNumber": "OF-1", "name": "X", "price": 1})
        assert resp.status_code == 400
        assert resp.get_json()["reason"] == "duplicate_part_number"

    def test_update_price_only(self, client, shop):
        resp = client.post("/parts", json={"id": 1, "partNumber": "OF-1",
                                           "name": "Oil filter", "price": 15})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["price"] == 15
        assert data["stock"] == 10
        assert data["cost"] == 5
        assert shop.records.get_vendor(1).credit == 100

    def test_adjust_stock(self, client):
        resp = client.post("/parts/1/stock", json={"delta": 5})
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 15

    def test_adjust_unknown_part(self, client):
        assert client.post("/parts/99/stock", json={"delta": 1}).status_code == 404


class TestVendors:
    """Tests for /vendors endpoints."""

    def test_list(self, client):
        vendors = client.get("/vendors").get_json()
        assert vendors[0]["credit"] == 100

    def test_payment(self, client):
        resp = client.post("/vendors/1/payments", json={"amount": 40, "notes": "partial"})
        assert resp.status_code == 201
        assert resp.get_json()["credit"] == 60
        payments = client.get("/vendors/1/payments").get_json()
        assert [p["amount"] for p in payments] == [40]

    def test_payment_must_be_positive(self, client):
        resp = client.post("/vendors/1/payments", json={"amount": -5})
        assert resp.status_code == 400
        assert resp.get_json()["reason"] == "invalid_number"

    def test_payment_unknown_vendor(self, client):
        assert client.post("/vendors/9/payments", json={"amount": 5}).status_code == 404


class TestVisits:
    """Tests for /visits endpoints."""

    def create(self, client, **extra):
        body = {
            "customerId": 1,
            "vehicleId": 1,
            "services": [{"name": "Oil change", "cost": 50}],
            "parts": [{"partId": 1, "qty": 2}],
            "taxEnabled": True,
        }
        body.update(extra)
        return client.post("/visits", json=body)

    def test_create_draft(self, client, shop):
        resp = self.create(client)
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["id"] == "00001"
        assert data["status"] == "Draft"
        assert data["finalTotal"] == pytest.approx(86.25)
        assert data["customer"] == "Alice"
        assert shop.ledger.get_part(1).stock == 10

    def test_open_visits(self, client):
        self.create(client)
        assert [v["id"] for v in client.get("/visits").get_json()] == ["00001"]

    def test_get_visit(self, client):
        self.create(client)
        assert client.get("/visits/00001").get_json()["vehicle"] == "Toyota Corolla (ABC-123)"
        assert client.get("/visits/00009").status_code == 404

    def test_create_and_complete(self, client, shop):
        resp = self.create(client, complete=True)
        assert resp.get_json()["status"] == "Completed"
        assert shop.ledger.get_part(1).stock == 8

    def test_incomplete_selection(self, client):
        resp = client.post("/visits", json={"customerId": 1})
        assert resp.status_code == 400
        assert resp.get_json()["reason"] == "incomplete_selection"

    def test_complete(self, client, shop):
        self.create(client)
        resp = client.post("/visits/00001/complete")
        assert resp.status_code == 200
        assert shop.ledger.get_part(1).stock == 8
        assert client.get("/visits").get_json() == []

    def test_complete_short_stock(self, client, shop):
        self.create(client, parts=[{"partId": 2, "qty": 2}])
        shop.ledger.adjust_stock(2, -1)
        resp = client.post("/visits/00001/complete")
        assert resp.status_code == 400
        assert resp.get_json()["reason"] == "insufficient_stock"

    def test_delete_draft(self, client):
        self.create(client)
        assert client.delete("/visits/00001").status_code == 204
        assert client.delete("/visits/00001").status_code == 404

    def test_delete_completed_refused(self, client):
        self.create(client, complete=True)
        resp = client.delete("/visits/00001")
        assert resp.status_code == 400
        assert resp.get_json()["reason"] == "visit_completed"


class TestReminders:
    """Tests for /reminders and /upcoming."""

    def test_reminders(self, client, clock):
        client.post(
            "/visits",
            json={"customerId": 1, "vehicleId": 1, "services": [{"name": "Wash", "cost": 10}],
                  "complete": True},
        )
        clock.advance(days=100)
        reminders = client.get("/reminders").get_json()
        assert [r["daysSince"] for r in reminders] == [100]

    def test_upcoming(self, client):
        client.post(
            "/visits",
            json={"customerId": 1, "vehicleId": 1,
                  "nextVisit": {"service": "Oil change", "months": 1}},
        )
        upcoming = client.get("/upcoming?window=all").get_json()
        assert upcoming[0]["date"] == "2025-07-01"
        assert upcoming[0]["label"] == "upcoming"

    def test_bad_window(self, client):
        assert client.get("/upcoming?window=month").status_code == 400
