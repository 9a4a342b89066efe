"""
Catalog, cart and review tests.

Verifies:
- Farmer listing CRUD (soft delete, duplicate names, ownership)
- Search filters and pagination envelope
- Cart price freezing and validation issues
- Product review upsert keeps one review per buyer
- Seller ratings require a delivered order
"""

from farmconnect.extensions import db
from farmconnect.models import Farmer, Product

from conftest import auth_headers, make_product, make_user, place_order


# =============================================================================
# LISTINGS
# =============================================================================


class TestListings:

    def test_farmer_creates_product(self, client, farmer, farmer_headers, category):
        resp = client.post(
            "/api/v1/products",
            json={"category_id": category.id, "name": "Fresh Garden Eggs", "price": "12.50",
                  "quantity_available": 40, "unit": "basket"},
            headers=farmer_headers,
        )
        assert resp.status_code == 201, resp.json
        data = resp.json["data"]
        assert data["price"] == 12.50
        assert data["price_cents"] == 1250
        assert data["slug"] == "fresh-garden-eggs"
        assert data["category_name"] == "Vegetables"

        db.session.expire_all()
        assert db.session.get(Farmer, farmer.farmer.id).total_products_listed == 1

    def test_duplicate_name_conflicts(self, client, farmer_headers, category, product):
        resp = client.post(
            "/api/v1/products",
            json={"category_id": category.id, "name": "tomatoes", "price": 9, "quantity_available": 1},
            headers=farmer_headers,
        )
        assert resp.status_code == 409
        assert resp.json["error"]["code"] == "DUPLICATE_PRODUCT"

    def test_invalid_price(self, client, farmer_headers, category):
        resp = client.post(
            "/api/v1/products",
            json={"category_id": category.id, "name": "Yam", "price": 0, "quantity_available": 1},
            headers=farmer_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_VALUES"

    def test_unknown_category(self, client, farmer_headers, db_session):
        resp = client.post(
            "/api/v1/products",
            json={"category_id": 999, "name": "Yam", "price": 3, "quantity_available": 1},
            headers=farmer_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_CATEGORY"

    def test_update_and_soft_delete(self, client, farmer_headers, product):
        resp = client.put(f"/api/v1/products/{product.id}", json={"price": 9.75}, headers=farmer_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["price"] == 9.75

        assert client.delete(f"/api/v1/products/{product.id}", headers=farmer_headers).status_code == 200
        assert client.get(f"/api/v1/products/{product.id}").status_code == 404

        db.session.expire_all()
        stored = db.session.get(Product, product.id)
        assert stored.deleted_at is not None
        assert stored.is_active is False

    def test_other_farmer_cannot_edit(self, client, product):
        rival = auth_headers(make_user("farmer", "rival@example.com"))
        resp = client.put(f"/api/v1/products/{product.id}", json={"price": 1}, headers=rival)
        assert resp.status_code == 404

    def test_my_products(self, client, farmer_headers, farmer, category, product):
        make_product(farmer, category, name="Cabbage", price_cents=500, quantity=3)
        resp = client.get("/api/v1/products/farmer/my-products", headers=farmer_headers)
        assert resp.status_code == 200
        assert resp.json["pagination"]["total"] == 2


class TestSearch:

    def test_filters_and_pagination(self, client, farmer, category, product):
        make_product(farmer, category, name="Cherry Tomatoes", price_cents=1500, quantity=5)
        make_product(farmer, category, name="Onions", price_cents=300, quantity=5)

        resp = client.get("/api/v1/products/search", query_string={"search": "tomato"})
        assert resp.status_code == 200
        assert resp.json["pagination"]["total"] == 2

        resp = client.get("/api/v1/products/search", query_string={"max_price": "9.00", "sort_by": "price",
                                                                   "sort_order": "asc"})
        assert [p["name"] for p in resp.json["data"]] == ["Onions", "Tomatoes"]

        resp = client.get("/api/v1/products/search", query_string={"limit": 1, "page": 2, "sort_by": "name",
                                                                   "sort_order": "asc"})
        assert resp.json["pagination"] == {"page": 2, "limit": 1, "total": 3, "pages": 3}
        assert [p["name"] for p in resp.json["data"]] == ["Onions"]

    def test_categories(self, client, category):
        resp = client.get("/api/v1/products/categories")
        assert [c["slug"] for c in resp.json["data"]] == ["vegetables"]
        assert client.get("/api/v1/products/categories/999").status_code == 404


# =============================================================================
# CART
# =============================================================================


class TestCart:

    def test_add_merges_lines(self, client, buyer_headers, product):
        client.post("/api/v1/cart/items", json={"product_id": product.id, "quantity": 2}, headers=buyer_headers)
        resp = client.post("/api/v1/cart/items", json={"product_id": product.id, "quantity": 3},
                           headers=buyer_headers)
        assert resp.status_code == 201
        cart = resp.json["data"]
        assert len(cart["items"]) == 1
        assert cart["item_count"] == 5
        assert cart["subtotal"] == 42.50

        assert client.get("/api/v1/cart/count", headers=buyer_headers).json["data"]["count"] == 5

    def test_cannot_exceed_stock(self, client, buyer_headers, product):
        resp = client.post("/api/v1/cart/items", json={"product_id": product.id, "quantity": 11},
                           headers=buyer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INSUFFICIENT_STOCK"

    def test_price_frozen_and_reported(self, client, buyer_headers, product):
        client.post("/api/v1/cart/items", json={"product_id": product.id, "quantity": 2}, headers=buyer_headers)

        product.price_cents = 900
        db.session.commit()

        cart = client.get("/api/v1/cart", headers=buyer_headers).json["data"]
        assert cart["items"][0]["unit_price"] == 8.50

        resp = client.post("/api/v1/cart/validate", headers=buyer_headers)
        assert resp.json["data"]["is_valid"] is False
        issue = resp.json["data"]["issues"][0]
        assert issue["type"] == "PRICE_CHANGED"
        assert issue["old_price"] == 8.50
        assert issue["new_price"] == 9.00

    def test_update_remove_and_clear(self, client, buyer_headers, product):
        cart = client.post("/api/v1/cart/items", json={"product_id": product.id, "quantity": 1},
                           headers=buyer_headers).json["data"]
        item_id = cart["items"][0]["id"]

        resp = client.put(f"/api/v1/cart/items/{item_id}", json={"quantity": 4}, headers=buyer_headers)
        assert resp.json["data"]["item_count"] == 4

        resp = client.put(f"/api/v1/cart/items/{item_id}", json={"quantity": 0}, headers=buyer_headers)
        assert resp.status_code == 400

        resp = client.delete(f"/api/v1/cart/items/{item_id}", headers=buyer_headers)
        assert resp.json["data"]["items"] == []

        client.post("/api/v1/cart/items", json={"product_id": product.id, "quantity": 1}, headers=buyer_headers)
        assert client.delete("/api/v1/cart", headers=buyer_headers).status_code == 200
        assert client.get("/api/v1/cart/count", headers=buyer_headers).json["data"]["count"] == 0


# =============================================================================
# REVIEWS
# =============================================================================


class TestProductReviews:

    def test_review_upsert(self, client, buyer_headers, product):
        first = client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 5, "comment": "Great"},
                            headers=buyer_headers)
        assert first.status_code == 201
        second = client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 3},
                             headers=buyer_headers)
        assert second.status_code == 201
        assert second.json["data"]["id"] == first.json["data"]["id"]

        data = client.get(f"/api/v1/products/{product.id}").json["data"]
        assert data["rating"] == 3.0
        assert data["rating_count"] == 1

        reviews = client.get(f"/api/v1/products/{product.id}/reviews")
        assert reviews.json["pagination"]["total"] == 1

    def test_rating_range(self, client, buyer_headers, product):
        resp = client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 6}, headers=buyer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_RATING"

    def test_review_links_own_order(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        resp = client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 4, "order_id": order["id"]},
                           headers=buyer_headers)
        assert resp.status_code == 201
        assert resp.json["data"]["order_id"] == order["id"]

    def test_review_rejects_foreign_order(self, client, buyer_headers, product, address):
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        other = auth_headers(make_user("buyer", "second@example.com"))

        resp = client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 4, "order_id": order["id"]},
                           headers=other)
        assert resp.status_code == 404
        assert resp.json["error"]["code"] == "ORDER_NOT_FOUND"
        assert client.get(f"/api/v1/products/{product.id}/reviews").json["pagination"]["total"] == 0

    def test_review_order_id_must_be_integer(self, client, buyer_headers, product):
        resp = client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 4, "order_id": "abc"},
                           headers=buyer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_ORDER_ID"

    def test_average_across_buyers(self, client, buyer_headers, product):
        other = auth_headers(make_user("buyer", "second@example.com"))
        client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 4}, headers=buyer_headers)
        client.post(f"/api/v1/products/{product.id}/reviews", json={"rating": 5}, headers=other)

        data = client.get(f"/api/v1/products/{product.id}").json["data"]
        assert data["rating"] == 4.5
        assert data["rating_count"] == 2


class TestSellerRatings:

    def test_requires_delivered_order(self, client, buyer_headers, admin_headers, farmer, product, address):
        farmer_id = farmer.farmer.id
        resp = client.post(f"/api/v1/reviews/sellers/{farmer_id}", json={"rating": 4}, headers=buyer_headers)
        assert resp.status_code == 403
        assert resp.json["error"]["code"] == "NOT_ELIGIBLE"

        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        client.post(f"/api/v1/orders/{order['id']}/status", json={"status": "delivered"}, headers=admin_headers)

        resp = client.post(f"/api/v1/reviews/sellers/{farmer_id}", json={"rating": 4, "quality_rating": 5},
                           headers=buyer_headers)
        assert resp.status_code == 201
        client.post(f"/api/v1/reviews/sellers/{farmer_id}", json={"rating": 2}, headers=buyer_headers)

        summary = client.get(f"/api/v1/reviews/sellers/{farmer_id}").json["data"]
        assert summary["total_reviews"] == 1
        assert summary["average_rating"] == 2.0
        assert summary["two_star"] == 1

        db.session.expire_all()
        assert db.session.get(Farmer, farmer_id).rating == 2.0
        assert db.session.get(Farmer, farmer_id).rating_count == 1

    def test_helpful_and_stats(self, client, buyer_headers, farmer_headers, admin_headers, farmer, product, address):
        farmer_id = farmer.farmer.id
        order = place_order(client, buyer_headers, product.id, 1, address.id).json["data"]
        client.post(f"/api/v1/orders/{order['id']}/status", json={"status": "delivered"}, headers=admin_headers)
        review = client.post(f"/api/v1/reviews/sellers/{farmer_id}", json={"rating": 5, "comment": "Fresh"},
                             headers=buyer_headers).json["data"]

        resp = client.post(f"/api/v1/reviews/{review['id']}/helpful", headers=farmer_headers)
        assert resp.json["data"]["helpful_count"] == 1

        stats = client.get("/api/v1/reviews/farmer/stats", headers=farmer_headers).json["data"]
        assert stats["total_reviews"] == 1
        assert stats["reviews_with_comments"] == 1

        summary = client.get("/api/v1/reviews/buyer/summary", headers=buyer_headers).json["data"]
        assert summary == {"total_reviews": 1, "average_rating": 5.0}
