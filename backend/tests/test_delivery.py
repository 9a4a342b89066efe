"""
Delivery partner tests: registration, availability, assignment and completion.
"""

import pytest

from farmconnect.extensions import db
from farmconnect.models import DeliveryPartner, Notification, Order

from conftest import auth_headers, make_user, place_order


@pytest.fixture
def rider(db_session):
    return make_user("delivery", "rider@example.com", first_name="Kwame", last_name="Mensah")


@pytest.fixture
def rider_headers(rider):
    return auth_headers(rider)


@pytest.fixture
def partner(client, rider_headers):
    resp = client.post(
        "/api/v1/delivery/register",
        json={"vehicle_type": "motorbike", "vehicle_number": "GR-1234-20", "service_region": "Greater Accra"},
        headers=rider_headers,
    )
    assert resp.status_code == 201, resp.json
    client.put("/api/v1/delivery/status", json={"status": "available"}, headers=rider_headers)
    return resp.json["data"]


class TestRegistration:

    def test_register_once(self, client, rider_headers):
        resp = client.post("/api/v1/delivery/register", json={"vehicle_type": "van"}, headers=rider_headers)
        assert resp.status_code == 201
        assert resp.json["data"]["current_status"] == "offline"
        assert resp.json["data"]["name"] == "Kwame Mensah"

        resp = client.post("/api/v1/delivery/register", json={"vehicle_type": "van"}, headers=rider_headers)
        assert resp.status_code == 409
        assert resp.json["error"]["code"] == "PARTNER_EXISTS"

    def test_vehicle_type_required(self, client, rider_headers):
        resp = client.post("/api/v1/delivery/register", json={}, headers=rider_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "MISSING_FIELDS"

    def test_buyer_cannot_register(self, client, buyer_headers):
        resp = client.post("/api/v1/delivery/register", json={"vehicle_type": "van"}, headers=buyer_headers)
        assert resp.status_code == 403

    def test_status_and_availability(self, client, rider_headers, partner):
        resp = client.get("/api/v1/delivery/available", query_string={"region": "Greater Accra"})
        assert [p["id"] for p in resp.json["data"]] == [partner["id"]]
        assert client.get("/api/v1/delivery/available", query_string={"region": "Volta"}).json["data"] == []

        resp = client.put("/api/v1/delivery/status", json={"status": "on-break"}, headers=rider_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_STATUS"


class TestAssignment:

    def test_assign_and_complete(self, client, buyer, rider, buyer_headers, admin_headers, rider_headers,
                                 partner, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]

        resp = client.post("/api/v1/delivery/assign", json={"order_id": order["id"], "partner_id": partner["id"]},
                           headers=admin_headers)
        assert resp.status_code == 200, resp.json
        assert resp.json["data"]["delivery_partner_id"] == partner["id"]
        assert resp.json["data"]["estimated_delivery"] is not None

        db.session.expire_all()
        assert db.session.get(Order, order["id"]).status == "dispatched"
        assert db.session.get(DeliveryPartner, partner["id"]).current_status == "busy"
        assert db.session.query(Notification).filter_by(user_id=buyer.id, notification_type="order_dispatched").count() == 1
        assert db.session.query(Notification).filter_by(user_id=rider.id, notification_type="delivery_assigned").count() == 1

        pending = client.get("/api/v1/delivery/pending", headers=rider_headers).json["data"]
        assert [o["id"] for o in pending] == [order["id"]]
        assert client.get("/api/v1/delivery/stats", headers=rider_headers).json["data"]["in_progress"] == 1

        resp = client.post(f"/api/v1/delivery/complete/{order['id']}", headers=rider_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["actual_delivery"] is not None

        stats = client.get("/api/v1/delivery/stats", headers=rider_headers).json["data"]
        assert stats["completed_deliveries"] == 1
        assert stats["in_progress"] == 0
        assert stats["current_status"] == "available"

        db.session.expire_all()
        assert db.session.get(Order, order["id"]).status == "delivered"

        resp = client.post(f"/api/v1/delivery/complete/{order['id']}", headers=rider_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_ORDER_STATUS"

    def test_cancelled_order_cannot_be_assigned(self, client, buyer_headers, admin_headers, partner, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        client.post(f"/api/v1/orders/{order['id']}/cancel", headers=buyer_headers)

        resp = client.post("/api/v1/delivery/assign", json={"order_id": order["id"], "partner_id": partner["id"]},
                           headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_ORDER_STATUS"

    def test_unknown_partner(self, client, buyer_headers, admin_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        resp = client.post("/api/v1/delivery/assign", json={"order_id": order["id"], "partner_id": 999},
                           headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json["error"]["code"] == "PARTNER_NOT_FOUND"

    def test_other_rider_cannot_complete(self, client, buyer_headers, admin_headers, partner, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        client.post("/api/v1/delivery/assign", json={"order_id": order["id"], "partner_id": partner["id"]},
                    headers=admin_headers)

        other = auth_headers(make_user("delivery", "rider2@example.com"))
        client.post("/api/v1/delivery/register", json={"vehicle_type": "bicycle"}, headers=other)
        resp = client.post(f"/api/v1/delivery/complete/{order['id']}", headers=other)
        assert resp.status_code == 404
