# Overview: Service-layer operations for seller ratings and review statistics.

from __future__ import annotations

from sqlalchemy import func, case

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import Farmer, Order, OrderItem, SellerRating
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate
from .product_service import get_farmer_for_user

SUB_RATINGS = ("communication_rating", "quality_rating", "delivery_rating")


def _get_farmer(farmer_id: int) -> Farmer:
    farmer = db.session.get(Farmer, farmer_id)
    if farmer is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "FARMER_NOT_FOUND", "Farmer not found")
    return farmer


def _rating_value(value, field: str, *, required: bool) -> int | None:
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_RATING", f"{field} must be between 1 and 5", {"field": field})
    return value


def seller_rating(farmer_id: int) -> dict:
    _get_farmer(farmer_id)
    row = (
        db.session.query(
            func.avg(SellerRating.rating),
            func.count(SellerRating.id),
            *[
                func.coalesce(func.sum(case((SellerRating.rating == stars, 1), else_=0)), 0)
                for stars in (5, 4, 3, 2, 1)
            ],
        )
        .filter(SellerRating.farmer_id == farmer_id)
        .one()
    )
    average, total, five, four, three, two, one = row
    return {
        "farmer_id": farmer_id,
        "average_rating": round(float(average), 2) if average is not None else None,
        "total_reviews": total or 0,
        "five_star": int(five),
        "four_star": int(four),
        "three_star": int(three),
        "two_star": int(two),
        "one_star": int(one),
    }


def delivered_order_for(farmer_id: int, buyer_id: int) -> Order | None:
    return (
        db.session.query(Order)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .filter(Order.buyer_id == buyer_id, OrderItem.farmer_id == farmer_id, Order.status == "delivered")
        .order_by(Order.delivered_at.desc(), Order.id.desc())
        .first()
    )


def add_seller_review(farmer_id: int, buyer_id: int, payload: dict) -> dict:
    """Upsert the buyer's rating of a farmer and refresh Farmer.rating in the same unit of work."""
    rating = _rating_value(payload.get("rating"), "rating", required=True)
    sub_ratings = {name: _rating_value(payload.get(name), name, required=False) for name in SUB_RATINGS}
    comment = payload.get("comment")

    def _op():
        farmer = lock_for_update(db.session.query(Farmer).filter(Farmer.id == farmer_id)).first()
        if farmer is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "FARMER_NOT_FOUND", "Farmer not found")
        if farmer.user_id == buyer_id:
            raise ServiceError(ErrorKind.FORBIDDEN, "NOT_ELIGIBLE", "You cannot review yourself")
        order = delivered_order_for(farmer_id, buyer_id)
        if order is None:
            raise ServiceError(
                ErrorKind.FORBIDDEN,
                "NOT_ELIGIBLE",
                "You can only review sellers you have received a delivered order from",
            )

        review = (
            db.session.query(SellerRating)
            .filter(SellerRating.farmer_id == farmer_id, SellerRating.buyer_id == buyer_id)
            .first()
        )
        if review is None:
            review = SellerRating(farmer_id=farmer_id, buyer_id=buyer_id, rating=rating)
            db.session.add(review)
        review.rating = rating
        review.comment = comment
        review.order_id = order.id
        for name, value in sub_ratings.items():
            setattr(review, name, value)
        db.session.flush()

        average, count = (
            db.session.query(func.avg(SellerRating.rating), func.count(SellerRating.id))
            .filter(SellerRating.farmer_id == farmer_id)
            .one()
        )
        farmer.rating = round(float(average), 2) if average is not None else 0
        farmer.rating_count = count or 0
        return review

    return run_in_transaction(_op).to_dict()


def list_seller_reviews(farmer_id: int, *, sort: str = "recent", page=None, limit=None):
    _get_farmer(farmer_id)
    query = db.session.query(SellerRating).filter(SellerRating.farmer_id == farmer_id)
    if sort == "helpful":
        query = query.order_by(SellerRating.helpful_count.desc(), SellerRating.id.desc())
    else:
        query = query.order_by(SellerRating.created_at.desc(), SellerRating.id.desc())
    items, meta = paginate(query, page, limit)
    return [r.to_dict() for r in items], meta


def mark_helpful(review_id: int) -> dict:
    def _op():
        review = lock_for_update(db.session.query(SellerRating).filter(SellerRating.id == review_id)).first()
        if review is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "REVIEW_NOT_FOUND", "Review not found")
        review.helpful_count = (review.helpful_count or 0) + 1
        return review

    return run_in_transaction(_op).to_dict()


def buyer_summary(buyer_id: int) -> dict:
    average, total = (
        db.session.query(func.avg(SellerRating.rating), func.count(SellerRating.id))
        .filter(SellerRating.buyer_id == buyer_id)
        .one()
    )
    return {
        "total_reviews": total or 0,
        "average_rating": round(float(average), 2) if average is not None else None,
    }


def farmer_stats(user_id: int) -> dict:
    farmer = get_farmer_for_user(user_id)
    total, average, highest, lowest, reviewers, with_comments = (
        db.session.query(
            func.count(SellerRating.id),
            func.avg(SellerRating.rating),
            func.max(SellerRating.rating),
            func.min(SellerRating.rating),
            func.count(func.distinct(SellerRating.buyer_id)),
            func.count(SellerRating.comment),
        )
        .filter(SellerRating.farmer_id == farmer.id)
        .one()
    )
    return {
        "farmer_id": farmer.id,
        "total_reviews": total or 0,
        "average_rating": round(float(average), 2) if average is not None else None,
        "highest_rating": highest,
        "lowest_rating": lowest,
        "unique_reviewers": reviewers or 0,
        "reviews_with_comments": with_comments or 0,
    }
