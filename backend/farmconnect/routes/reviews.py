# Overview: Flask API routes for seller ratings.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..responses import success, json_body, page_args
from ..services import review_service

reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/v1/reviews")


@reviews_bp.get("/sellers/<int:farmer_id>")
def seller_rating_route(farmer_id: int):
    return success(review_service.seller_rating(farmer_id))


@reviews_bp.post("/sellers/<int:farmer_id>")
@require_auth
@require_role("buyer")
def add_seller_review_route(farmer_id: int):
    """Only buyers with a delivered order from this farmer may review (403 NOT_ELIGIBLE)."""
    review = review_service.add_seller_review(farmer_id, g.user_id, json_body())
    return success(review, message="Review submitted", status=201)


@reviews_bp.get("/sellers/<int:farmer_id>/list")
def list_seller_reviews_route(farmer_id: int):
    page, limit = page_args()
    items, meta = review_service.list_seller_reviews(
        farmer_id, sort=request.args.get("sort", "recent"), page=page, limit=limit
    )
    return success(items, pagination=meta)


@reviews_bp.post("/<int:review_id>/helpful")
@require_auth
def mark_helpful_route(review_id: int):
    return success(review_service.mark_helpful(review_id))


@reviews_bp.get("/buyer/summary")
@require_auth
def buyer_summary_route():
    return success(review_service.buyer_summary(g.user_id))


@reviews_bp.get("/farmer/stats")
@require_auth
@require_role("farmer")
def farmer_stats_route():
    return success(review_service.farmer_stats(g.user_id))
