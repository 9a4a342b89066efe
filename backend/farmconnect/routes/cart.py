# Overview: Flask API routes for the shopping cart.

from flask import Blueprint, g

from ..decorators import require_auth
from ..responses import success, json_body
from ..services import cart_service

cart_bp = Blueprint("cart", __name__, url_prefix="/api/v1/cart")


@cart_bp.get("")
@cart_bp.get("/")
@require_auth
def get_cart_route():
    return success(cart_service.get_cart(g.user_id))


@cart_bp.get("/count")
@require_auth
def count_route():
    return success({"count": cart_service.item_count(g.user_id)})


@cart_bp.post("/items")
@require_auth
def add_item_route():
    data = json_body()
    cart = cart_service.add_item(g.user_id, data.get("product_id"), data.get("quantity", 1))
    return success(cart, message="Item added to cart", status=201)


@cart_bp.put("/items/<int:item_id>")
@require_auth
def update_item_route(item_id: int):
    cart = cart_service.update_item(g.user_id, item_id, json_body().get("quantity"))
    return success(cart, message="Cart item updated")


@cart_bp.delete("/items/<int:item_id>")
@require_auth
def remove_item_route(item_id: int):
    return success(cart_service.remove_item(g.user_id, item_id), message="Item removed from cart")


@cart_bp.delete("")
@cart_bp.delete("/")
@require_auth
def clear_cart_route():
    cart_service.clear_cart(g.user_id)
    return success(message="Cart cleared")


@cart_bp.post("/validate")
@require_auth
def validate_route():
    """Report PRODUCT_INACTIVE / INSUFFICIENT_STOCK / PRICE_CHANGED issues before checkout."""
    return success(cart_service.validate_cart(g.user_id))
