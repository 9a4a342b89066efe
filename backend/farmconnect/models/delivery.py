from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PARTNER_STATUSES = ("available", "busy", "offline")


class DeliveryPartner(db.Model):
    __tablename__ = "delivery_partners"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_delivery_partners_user_id"),
        db.Index("ix_delivery_partners_status_region", "current_status", "service_region"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_name = db.Column(db.String(255), nullable=True)
    vehicle_type = db.Column(db.String(50), nullable=False)
    vehicle_number = db.Column(db.String(50), nullable=True)
    license_number = db.Column(db.String(50), nullable=True)
    service_region = db.Column(db.String(100), nullable=True)
    current_status = db.Column(db.String(20), nullable=False, default="offline")
    rating = db.Column(db.Float, nullable=False, default=0)
    completed_deliveries = db.Column(db.Integer, nullable=False, default=0)
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.user.full_name if self.user else None,
            "company_name": self.company_name,
            "vehicle_type": self.vehicle_type,
            "vehicle_number": self.vehicle_number,
            "service_region": self.service_region,
            "current_status": self.current_status,
            "rating": self.rating,
            "completed_deliveries": self.completed_deliveries,
            "is_approved": self.is_approved,
            "created_at": to_utc_z(self.created_at),
        }
