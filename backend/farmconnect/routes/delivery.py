# Overview: Flask API routes for delivery partners, order assignment and completion.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..responses import success, json_body
from ..services import delivery_service

delivery_bp = Blueprint("delivery", __name__, url_prefix="/api/v1/delivery")


@delivery_bp.post("/register")
@require_auth
@require_role("delivery")
def register_route():
    partner = delivery_service.register_partner(g.user_id, json_body())
    return success(partner, message="Delivery partner registered", status=201)


@delivery_bp.get("/profile")
@require_auth
@require_role("delivery")
def profile_route():
    return success(delivery_service.get_profile(g.user_id))


@delivery_bp.put("/status")
@require_auth
@require_role("delivery")
def status_route():
    return success(delivery_service.update_status(g.user_id, json_body().get("status")), message="Status updated")


@delivery_bp.get("/available")
def available_route():
    return success(delivery_service.list_available(request.args.get("region")))


@delivery_bp.post("/assign")
@require_auth
@require_role("admin")
def assign_route():
    """Body: order_id, partner_id. Moves the order to 'dispatched'."""
    data = json_body()
    tracking = delivery_service.assign_order(data.get("order_id"), data.get("partner_id"), actor_id=g.user_id)
    return success(tracking, message="Order assigned")


@delivery_bp.post("/complete/<int:order_id>")
@require_auth
@require_role("delivery")
def complete_route(order_id: int):
    return success(delivery_service.complete_delivery(order_id, g.user_id), message="Delivery completed")


@delivery_bp.get("/pending")
@require_auth
@require_role("delivery")
def pending_route():
    return success(delivery_service.pending_deliveries(g.user_id))


@delivery_bp.get("/stats")
@require_auth
@require_role("delivery")
def stats_route():
    return success(delivery_service.partner_stats(g.user_id))
