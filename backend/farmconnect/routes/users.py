# Overview: Flask API routes for user profiles, delivery addresses and favorites.

from flask import Blueprint, g

from ..decorators import require_auth
from ..responses import success, json_body
from ..services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@users_bp.get("/profile")
@require_auth
def get_profile_route():
    return success(user_service.get_profile(g.user_id))


@users_bp.put("/profile")
@require_auth
def update_profile_route():
    return success(user_service.update_profile(g.user_id, json_body()), message="Profile updated")


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


@users_bp.get("/addresses")
@require_auth
def list_addresses_route():
    return success(user_service.list_addresses(g.user_id))


@users_bp.post("/addresses")
@require_auth
def create_address_route():
    address = user_service.create_address(g.user_id, json_body())
    return success(address, message="Address created", status=201)


@users_bp.get("/addresses/default")
@require_auth
def default_address_route():
    return success(user_service.get_default_address(g.user_id))


@users_bp.get("/addresses/<int:address_id>")
@require_auth
def get_address_route(address_id: int):
    return success(user_service.get_address(address_id, g.user_id))


@users_bp.put("/addresses/<int:address_id>")
@require_auth
def update_address_route(address_id: int):
    return success(user_service.update_address(address_id, g.user_id, json_body()), message="Address updated")


@users_bp.delete("/addresses/<int:address_id>")
@require_auth
def delete_address_route(address_id: int):
    user_service.delete_address(address_id, g.user_id)
    return success(message="Address deleted")


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------


@users_bp.get("/favorites")
@require_auth
def list_favorites_route():
    return success(user_service.list_favorites(g.user_id))


@users_bp.post("/favorites/<int:product_id>")
@require_auth
def add_favorite_route(product_id: int):
    return success(user_service.add_favorite(g.user_id, product_id), status=201)


@users_bp.delete("/favorites/<int:product_id>")
@require_auth
def remove_favorite_route(product_id: int):
    user_service.remove_favorite(g.user_id, product_id)
    return success(message="Removed from favorites")


@users_bp.get("/favorites/<int:product_id>/check")
@require_auth
def check_favorite_route(product_id: int):
    return success({"product_id": product_id, "is_favorite": user_service.is_favorite(g.user_id, product_id)})
