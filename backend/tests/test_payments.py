"""
Payment tests.

Verifies:
- Initiation moves transaction and order into 'processing'
- Provider callback outcomes (success, failure, replay)
- Webhook secret check
- Saved payment methods keep a single default
"""

from farmconnect.extensions import db
from farmconnect.models import Notification, Order, PaymentTransaction

from conftest import place_order


def initiate(client, headers, order_id, **extra):
    body = {"order_id": order_id, "payment_method": "mtn", "phone_number": "0241234567"}
    body.update(extra)
    return client.post("/api/v1/payments/initiate", json=body, headers=headers)


def callback(client, transaction_id, status, headers=None, **extra):
    body = {"transaction_id": transaction_id, "status": status}
    body.update(extra)
    return client.post("/api/v1/payments/callback", json=body, headers=headers or {})


# =============================================================================
# TRANSACTIONS
# =============================================================================


class TestTransactions:

    def test_initiate(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 2, address.id).json["data"]

        resp = initiate(client, buyer_headers, order["id"])
        assert resp.status_code == 201, resp.json
        data = resp.json["data"]
        assert data["transaction"]["status"] == "processing"
        assert data["transaction"]["amount"] == 22.00
        assert data["payment"]["status"] == "initiated"
        assert data["payment"]["provider"] == "mtn"
        assert data["payment"]["payment_reference"].startswith("MTN-")

        db.session.expire_all()
        assert db.session.get(Order, order["id"]).payment_status == "processing"

    def test_missing_phone(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        resp = client.post("/api/v1/payments/initiate", json={"order_id": order["id"], "payment_method": "mtn"},
                           headers=buyer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "MISSING_FIELDS"

    def test_success_callback_marks_order_paid(self, client, buyer, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        txn = initiate(client, buyer_headers, order["id"]).json["data"]["transaction"]

        resp = callback(client, txn["id"], "success", provider_reference="MTN-998877")
        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "completed"
        assert resp.json["data"]["provider_transaction_id"] == "MTN-998877"

        db.session.expire_all()
        stored = db.session.get(Order, order["id"])
        assert stored.payment_status == "paid"
        assert stored.paid_at is not None
        assert db.session.query(Notification).filter_by(
            user_id=buyer.id, notification_type="payment_received"
        ).count() == 1

        # Replayed webhook is acknowledged without a second notification
        assert callback(client, txn["id"], "success").status_code == 200
        assert db.session.query(Notification).filter_by(notification_type="payment_received").count() == 1

        resp = initiate(client, buyer_headers, order["id"])
        assert resp.status_code == 409
        assert resp.json["error"]["code"] == "ORDER_ALREADY_PAID"

    def test_callback_by_reference(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        txn = initiate(client, buyer_headers, order["id"]).json["data"]["transaction"]

        resp = callback(client, txn["transaction_reference"], "success")
        assert resp.status_code == 200
        assert resp.json["data"]["id"] == txn["id"]

    def test_failed_callback(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        txn = initiate(client, buyer_headers, order["id"]).json["data"]["transaction"]

        resp = callback(client, txn["id"], "failed", reason="Insufficient balance")
        assert resp.json["data"]["status"] == "failed"
        assert resp.json["data"]["failure_reason"] == "Insufficient balance"

        db.session.expire_all()
        assert db.session.get(Order, order["id"]).payment_status == "failed"

    def test_unknown_callback_status(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        txn = initiate(client, buyer_headers, order["id"]).json["data"]["transaction"]

        resp = callback(client, txn["id"], "pending")
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_CALLBACK_STATUS"

    def test_unknown_transaction(self, client, db_session):
        resp = callback(client, 4242, "success")
        assert resp.status_code == 404
        assert resp.json["error"]["code"] == "TRANSACTION_NOT_FOUND"

    def test_cancelled_order_cannot_be_paid(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        client.post(f"/api/v1/orders/{order['id']}/cancel", headers=buyer_headers)

        resp = initiate(client, buyer_headers, order["id"])
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_ORDER_STATUS"
        assert db.session.query(PaymentTransaction).count() == 0

    def test_summary(self, client, buyer_headers, product, address):
        first = place_order(client, buyer_headers, product.id, 2, address.id).json["data"]
        second = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        paid = initiate(client, buyer_headers, first["id"]).json["data"]["transaction"]
        initiate(client, buyer_headers, second["id"])
        callback(client, paid["id"], "success")

        resp = client.get("/api/v1/payments/summary", headers=buyer_headers)
        assert resp.json["data"] == {
            "total_transactions": 2,
            "successful": 1,
            "failed": 0,
            "total_paid": 22.00,
            "pending_amount": 13.50,
        }

        resp = client.get(f"/api/v1/payments/order/{first['id']}", headers=buyer_headers)
        assert [t["status"] for t in resp.json["data"]] == ["completed"]


class TestWebhookSecret:

    def test_secret_required_when_configured(self, app, monkeypatch, client, buyer_headers, product, address):
        monkeypatch.setitem(app.config, "PAYMENT_WEBHOOK_SECRET", "shared-secret")
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        txn = initiate(client, buyer_headers, order["id"]).json["data"]["transaction"]

        resp = callback(client, txn["id"], "success")
        assert resp.status_code == 401
        assert resp.json["error"]["code"] == "INVALID_SIGNATURE"

        resp = callback(client, txn["id"], "success", headers={"X-Webhook-Secret": "wrong"})
        assert resp.status_code == 401

        resp = callback(client, txn["id"], "success", headers={"X-Webhook-Secret": "shared-secret"})
        assert resp.status_code == 200


# =============================================================================
# SAVED METHODS
# =============================================================================


class TestPaymentMethods:

    def test_single_default(self, client, buyer_headers):
        first = client.post(
            "/api/v1/payments/methods",
            json={"method_type": "mobile_money", "provider": "mtn", "account_number": "0241234567",
                  "account_name": "Kofi Boateng", "is_default": True},
            headers=buyer_headers,
        )
        assert first.status_code == 201
        assert first.json["data"]["account_number"] == "******4567"

        second = client.post(
            "/api/v1/payments/methods",
            json={"method_type": "mobile_money", "provider": "vodafone", "account_number": "0201112222",
                  "is_default": True},
            headers=buyer_headers,
        )
        assert second.status_code == 201

        methods = client.get("/api/v1/payments/methods", headers=buyer_headers).json["data"]
        assert [(m["provider"], m["is_default"]) for m in methods] == [("vodafone", True), ("mtn", False)]

    def test_invalid_type(self, client, buyer_headers):
        resp = client.post(
            "/api/v1/payments/methods",
            json={"method_type": "crypto", "account_number": "abc123"},
            headers=buyer_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_PAYMENT_METHOD"

    def test_account_number_required(self, client, buyer_headers):
        resp = client.post("/api/v1/payments/methods", json={"method_type": "card"}, headers=buyer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "MISSING_FIELDS"

    def test_update_and_delete(self, client, buyer_headers):
        method = client.post(
            "/api/v1/payments/methods",
            json={"method_type": "bank_transfer", "account_number": "1002003004"},
            headers=buyer_headers,
        ).json["data"]

        resp = client.put(f"/api/v1/payments/methods/{method['id']}", json={"account_name": "Savings"},
                          headers=buyer_headers)
        assert resp.json["data"]["account_name"] == "Savings"

        assert client.delete(f"/api/v1/payments/methods/{method['id']}", headers=buyer_headers).status_code == 200
        assert client.get("/api/v1/payments/methods", headers=buyer_headers).json["data"] == []
        resp = client.delete(f"/api/v1/payments/methods/{method['id']}", headers=buyer_headers)
        assert resp.status_code == 404
