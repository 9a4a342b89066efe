# Overview: Flask API routes for orders; checkout, cancellation, status changes and reads.

# backend/farmconnect/routes/orders.py
"""
Order routes.

POST /api/v1/orders turns the caller's cart into an order in one unit of
work (see order_service.create_order). Status and payment-status changes
are admin-only.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..responses import success, json_body, page_args
from ..services import order_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")


@orders_bp.post("")
@orders_bp.post("/")
@require_auth
def create_order_route():
    """
    Checkout.

    Body: delivery_address_id (required), payment_method, special_instructions
    Errors: EMPTY_CART, INVALID_ADDRESS, INSUFFICIENT_STOCK (400)
    """
    order = order_service.create_order(g.user_id, json_body())
    return success(order, message="Order created successfully", status=201)


@orders_bp.get("")
@orders_bp.get("/")
@require_auth
def list_orders_route():
    page, limit = page_args()
    items, meta = order_service.list_user_orders(
        g.user_id,
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
        page=page,
        limit=limit,
    )
    return success(items, pagination=meta)


@orders_bp.get("/farmer/my-orders")
@require_auth
@require_role("farmer")
def farmer_orders_route():
    page, limit = page_args()
    items, meta = order_service.list_farmer_orders(
        g.user_id, status=request.args.get("status"), page=page, limit=limit
    )
    return success(items, pagination=meta)


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    is_admin = g.current_user.get("user_type") == "admin"
    return success(order_service.get_order(order_id, g.user_id, is_admin=is_admin))


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    """Cancel a pending/confirmed order and restock its lines."""
    order = order_service.cancel_order(order_id, g.user_id, json_body().get("reason"))
    return success(order, message="Order cancelled successfully")


@orders_bp.post("/<int:order_id>/status")
@require_auth
@require_role("admin")
def update_status_route(order_id: int):
    order = order_service.update_order_status(order_id, json_body().get("status"), actor_id=g.user_id)
    return success(order, message="Order status updated")


@orders_bp.post("/<int:order_id>/payment-status")
@require_auth
@require_role("admin")
def update_payment_status_route(order_id: int):
    order = order_service.update_payment_status(order_id, json_body().get("payment_status"), actor_id=g.user_id)
    return success(order, message="Payment status updated")
