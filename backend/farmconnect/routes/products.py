# Overview: Flask API routes for the catalog; categories, listings, search and product reviews.

# backend/farmconnect/routes/products.py
"""
Product catalog routes.

Browsing (categories, search, featured, detail, reviews) is public.
Listing management is restricted to farmers and scoped to their own
products. Prices are accepted and returned in GHS; storage is pesewas.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..responses import success, json_body, page_args, bool_arg
from ..services import product_service

products_bp = Blueprint("products", __name__, url_prefix="/api/v1/products")


@products_bp.get("/categories")
def list_categories_route():
    return success(product_service.list_categories())


@products_bp.get("/categories/<int:category_id>")
def get_category_route(category_id: int):
    return success(product_service.get_category(category_id))


@products_bp.get("/featured")
def featured_route():
    limit = request.args.get("limit", default=8, type=int)
    return success(product_service.featured_products(limit))


@products_bp.get("/search")
def search_route():
    """
    Search listed products.

    Query params:
    - search, category_id, farmer_id, region, min_price, max_price, featured
    - sort_by: created_at | price | rating | total_sold | name
    - sort_order: asc | desc
    - page, limit
    """
    page, limit = page_args()
    items, meta = product_service.search_products(
        search=request.args.get("search"),
        category_id=request.args.get("category_id", type=int),
        farmer_id=request.args.get("farmer_id", type=int),
        region=request.args.get("region"),
        min_price=request.args.get("min_price"),
        max_price=request.args.get("max_price"),
        featured=bool_arg("featured"),
        sort_by=request.args.get("sort_by", "created_at"),
        sort_order=request.args.get("sort_order", "desc"),
        page=page,
        limit=limit,
    )
    return success(items, pagination=meta)


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    return success(product_service.get_product(product_id))


@products_bp.post("")
@products_bp.post("/")
@require_auth
@require_role("farmer")
def create_product_route():
    product = product_service.create_product(g.user_id, json_body())
    return success(product, message="Product created successfully", status=201)


@products_bp.get("/farmer/my-products")
@require_auth
@require_role("farmer")
def my_products_route():
    page, limit = page_args()
    items, meta = product_service.list_farmer_products(
        g.user_id,
        include_inactive=bool_arg("include_inactive") is not False,
        page=page,
        limit=limit,
    )
    return success(items, pagination=meta)


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("farmer")
def update_product_route(product_id: int):
    product = product_service.update_product(product_id, g.user_id, json_body())
    return success(product, message="Product updated successfully")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("farmer")
def delete_product_route(product_id: int):
    product_service.delete_product(product_id, g.user_id)
    return success(message="Product deleted successfully")


@products_bp.post("/<int:product_id>/reviews")
@require_auth
@require_role("buyer")
def add_review_route(product_id: int):
    """Create or replace the caller's review of a product (rating 1-5)."""
    review = product_service.add_product_review(product_id, g.user_id, json_body())
    return success(review, message="Review submitted", status=201)


@products_bp.get("/<int:product_id>/reviews")
def list_reviews_route(product_id: int):
    page, limit = page_args()
    items, meta = product_service.list_product_reviews(product_id, page=page, limit=limit)
    return success(items, pagination=meta)
