from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SellerRating(db.Model):
    """
    Buyer's rating of a farmer. One per (farmer, buyer); resubmission overwrites.

    WHY: Farmer.rating is recomputed from these rows in the same transaction.
    """
    __tablename__ = "seller_ratings"
    __table_args__ = (
        db.UniqueConstraint("farmer_id", "buyer_id", name="uq_seller_ratings_farmer_buyer"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_seller_ratings_rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    farmer_id = db.Column(db.Integer, db.ForeignKey("farmers.id", ondelete="CASCADE"), nullable=False)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    rating = db.Column(db.Integer, nullable=False)
    communication_rating = db.Column(db.Integer, nullable=True)
    quality_rating = db.Column(db.Integer, nullable=True)
    delivery_rating = db.Column(db.Integer, nullable=True)
    comment = db.Column(db.Text, nullable=True)
    helpful_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    buyer = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "farmer_id": self.farmer_id,
            "buyer_id": self.buyer_id,
            "buyer_name": self.buyer.full_name if self.buyer else None,
            "order_id": self.order_id,
            "rating": self.rating,
            "communication_rating": self.communication_rating,
            "quality_rating": self.quality_rating,
            "delivery_rating": self.delivery_rating,
            "comment": self.comment,
            "helpful_count": self.helpful_count,
            "created_at": to_utc_z(self.created_at),
        }
