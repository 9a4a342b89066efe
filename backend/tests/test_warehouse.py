"""
Warehouse ledger tests.

Verifies:
- Every inventory change appends exactly one stock movement
- Removals never drive quantity_on_hand negative
- current_stock_value follows on-hand quantity * live price
- Role checks on ledger mutations
"""

from farmconnect.extensions import db
from farmconnect.models import StockMovement, WarehouseInventory

from conftest import make_product


def add(client, headers, warehouse, product, quantity, **extra):
    body = {"warehouse_id": warehouse.id, "product_id": product.id, "quantity": quantity}
    body.update(extra)
    return client.post("/api/v1/warehouse/inventory/add", json=body, headers=headers)


def remove(client, headers, warehouse, product, quantity, **extra):
    body = {"warehouse_id": warehouse.id, "product_id": product.id, "quantity": quantity}
    body.update(extra)
    return client.post("/api/v1/warehouse/inventory/remove", json=body, headers=headers)


class TestLedger:

    def test_add_then_remove_round_trip(self, client, warehouse_headers, warehouse, product):
        assert add(client, warehouse_headers, warehouse, product, 40).status_code == 200
        resp = add(client, warehouse_headers, warehouse, product, 25, reference_id="PO-77")
        assert resp.json["data"]["quantity_on_hand"] == 65

        resp = remove(client, warehouse_headers, warehouse, product, 25)
        assert resp.status_code == 200
        assert resp.json["data"]["quantity_on_hand"] == 40

        movements = (
            db.session.query(StockMovement)
            .filter_by(warehouse_id=warehouse.id)
            .order_by(StockMovement.id)
            .all()
        )
        assert [(m.movement_type, m.quantity) for m in movements] == [
            ("inbound", 40), ("inbound", 25), ("outbound", -25),
        ]
        assert movements[1].reference_id == "PO-77"

    def test_ledger_sums_to_on_hand(self, client, warehouse_headers, warehouse, product):
        add(client, warehouse_headers, warehouse, product, 30)
        remove(client, warehouse_headers, warehouse, product, 4, reason="damaged")
        remove(client, warehouse_headers, warehouse, product, 6)

        db.session.expire_all()
        row = db.session.query(WarehouseInventory).filter_by(warehouse_id=warehouse.id, product_id=product.id).one()
        total = sum(m.quantity for m in db.session.query(StockMovement).filter_by(product_id=product.id))
        assert row.quantity_on_hand == total == 20

    def test_insufficient_inventory_writes_nothing(self, client, warehouse_headers, warehouse, product):
        add(client, warehouse_headers, warehouse, product, 5)

        resp = remove(client, warehouse_headers, warehouse, product, 6)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INSUFFICIENT_INVENTORY"
        assert resp.json["error"]["details"] == {"on_hand": 5, "requested": 6}

        db.session.expire_all()
        assert db.session.query(StockMovement).count() == 1
        row = db.session.query(WarehouseInventory).one()
        assert row.quantity_on_hand == 5

    def test_remove_without_inventory_row(self, client, warehouse_headers, warehouse, product):
        resp = remove(client, warehouse_headers, warehouse, product, 1)
        assert resp.status_code == 404
        assert resp.json["error"]["code"] == "INVENTORY_NOT_FOUND"

    def test_non_string_reason(self, client, warehouse_headers, warehouse, product):
        add(client, warehouse_headers, warehouse, product, 5)

        resp = remove(client, warehouse_headers, warehouse, product, 1, reason=7)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_REASON"
        assert resp.json["error"]["details"] == {"field": "reason"}

        db.session.expire_all()
        assert db.session.query(StockMovement).count() == 1
        assert db.session.query(WarehouseInventory).one().quantity_on_hand == 5

    def test_non_positive_quantity(self, client, warehouse_headers, warehouse, product):
        resp = add(client, warehouse_headers, warehouse, product, 0)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_QUANTITY"

        resp = add(client, warehouse_headers, warehouse, product, -3)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_QUANTITY"

    def test_unknown_warehouse(self, client, warehouse_headers, product):
        resp = client.post(
            "/api/v1/warehouse/inventory/add",
            json={"warehouse_id": 4040, "product_id": product.id, "quantity": 1},
            headers=warehouse_headers,
        )
        assert resp.status_code == 404
        assert resp.json["error"]["code"] == "WAREHOUSE_NOT_FOUND"

    def test_buyer_cannot_move_stock(self, client, buyer_headers, warehouse, product):
        assert add(client, buyer_headers, warehouse, product, 5).status_code == 403


class TestStockValue:

    def test_value_tracks_on_hand(self, client, warehouse_headers, warehouse, product):
        # product price is GHS 8.50
        add(client, warehouse_headers, warehouse, product, 20)
        resp = client.get(f"/api/v1/warehouse/locations/{warehouse.id}")
        assert resp.json["data"]["current_stock_value"] == 170.00

        remove(client, warehouse_headers, warehouse, product, 10)
        resp = client.get(f"/api/v1/warehouse/{warehouse.id}/stats")
        data = resp.json["data"]
        assert data["current_stock_value"] == 85.00
        assert data["total_products"] == 1
        assert data["total_quantity"] == 10
        assert data["low_stock_items"] == 1
        assert data["recent_movements"] == 2


class TestReads:

    def test_inventory_low_stock_and_search(self, client, warehouse_headers, farmer, category, warehouse, product):
        maize = make_product(farmer, category, name="Maize", price_cents=200, quantity=500)
        add(client, warehouse_headers, warehouse, product, 10)
        add(client, warehouse_headers, warehouse, maize, 300)

        resp = client.get(f"/api/v1/warehouse/{warehouse.id}/inventory")
        assert resp.status_code == 200
        assert [row["product_name"] for row in resp.json["data"]] == ["Maize", "Tomatoes"]

        resp = client.get(f"/api/v1/warehouse/{warehouse.id}/low-stock")
        assert [row["product_name"] for row in resp.json["data"]] == ["Tomatoes"]

        resp = client.get(f"/api/v1/warehouse/{warehouse.id}/inventory/search", query_string={"q": "mai"})
        assert [row["product_name"] for row in resp.json["data"]] == ["Maize"]

        resp = client.get(f"/api/v1/warehouse/{warehouse.id}/movements", query_string={"product_id": maize.id})
        assert resp.json["pagination"]["total"] == 1

    def test_search_requires_term(self, client, warehouse):
        resp = client.get(f"/api/v1/warehouse/{warehouse.id}/inventory/search")
        assert resp.status_code == 400


class TestLocations:

    def test_admin_creates_location(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/v1/warehouse/locations",
            json={"name": "Tamale North", "location": "Central Market", "region": "Northern", "capacity_kg": 5000},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["data"]["current_stock_value"] == 0.0

        resp = client.get("/api/v1/warehouse/locations", query_string={"region": "Northern"})
        assert [w["name"] for w in resp.json["data"]] == ["Tamale North"]

    def test_duplicate_name(self, client, admin_headers, warehouse):
        resp = client.post(
            "/api/v1/warehouse/locations",
            json={"name": warehouse.name, "location": "Elsewhere", "region": "Ashanti"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_missing_fields(self, client, admin_headers, db_session):
        resp = client.post("/api/v1/warehouse/locations", json={"name": "Half"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "MISSING_FIELDS"

    def test_warehouse_role_cannot_create_location(self, client, warehouse_headers, db_session):
        resp = client.post(
            "/api/v1/warehouse/locations",
            json={"name": "X", "location": "Y", "region": "Z"},
            headers=warehouse_headers,
        )
        assert resp.status_code == 403
