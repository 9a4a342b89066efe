# Overview: Flask API routes for warehouse locations, the stock ledger and inventory reads.

# backend/farmconnect/routes/warehouse.py
"""
Warehouse routes.

Ledger mutations (/inventory/add, /inventory/remove) are limited to admin
and warehouse staff; every accepted call writes one StockMovement.
Reads are public, matching the storefront's warehouse availability view.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..responses import success, json_body, page_args, bool_arg
from ..services import warehouse_service

warehouse_bp = Blueprint("warehouse", __name__, url_prefix="/api/v1/warehouse")


@warehouse_bp.post("/locations")
@require_auth
@require_role("admin")
def create_location_route():
    location = warehouse_service.create_location(json_body())
    return success(location, message="Warehouse created", status=201)


@warehouse_bp.get("/locations")
def list_locations_route():
    return success(warehouse_service.list_locations(
        region=request.args.get("region"),
        is_active=bool_arg("is_active"),
    ))


@warehouse_bp.get("/locations/<int:warehouse_id>")
def get_location_route(warehouse_id: int):
    return success(warehouse_service.get_location(warehouse_id))


@warehouse_bp.put("/locations/<int:warehouse_id>")
@require_auth
@require_role("admin")
def update_location_route(warehouse_id: int):
    return success(warehouse_service.update_location(warehouse_id, json_body()), message="Warehouse updated")


@warehouse_bp.post("/inventory/add")
@require_auth
@require_role("admin", "warehouse")
def add_inventory_route():
    """Body: warehouse_id, product_id, quantity, reference_id, notes."""
    row = warehouse_service.add_inventory(json_body(), actor_id=g.user_id)
    return success(row, message="Inventory added")


@warehouse_bp.post("/inventory/remove")
@require_auth
@require_role("admin", "warehouse")
def remove_inventory_route():
    """Body: warehouse_id, product_id, quantity, reason (default 'outbound'), reference_id, notes."""
    row = warehouse_service.remove_inventory(json_body(), actor_id=g.user_id)
    return success(row, message="Inventory removed")


@warehouse_bp.get("/<int:warehouse_id>/inventory")
def list_inventory_route(warehouse_id: int):
    page, limit = page_args()
    items, meta = warehouse_service.list_inventory(warehouse_id, page=page, limit=limit)
    return success(items, pagination=meta)


@warehouse_bp.get("/<int:warehouse_id>/low-stock")
def low_stock_route(warehouse_id: int):
    return success(warehouse_service.low_stock(warehouse_id))


@warehouse_bp.get("/<int:warehouse_id>/movements")
def movements_route(warehouse_id: int):
    page, limit = page_args()
    items, meta = warehouse_service.list_movements(
        warehouse_id, product_id=request.args.get("product_id", type=int), page=page, limit=limit
    )
    return success(items, pagination=meta)


@warehouse_bp.get("/<int:warehouse_id>/stats")
def stats_route(warehouse_id: int):
    return success(warehouse_service.stats(warehouse_id))


@warehouse_bp.get("/<int:warehouse_id>/inventory/search")
def search_inventory_route(warehouse_id: int):
    return success(warehouse_service.search_inventory(
        warehouse_id, request.args.get("q"), limit=request.args.get("limit", default=20, type=int)
    ))
