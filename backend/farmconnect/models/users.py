from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

USER_TYPES = ("farmer", "buyer", "admin", "delivery", "warehouse")
VERIFICATION_STATUSES = ("unverified", "pending", "approved", "rejected")


class User(db.Model):
    """
    Account for every marketplace actor.

    WHY: One login per person; user_type drives role checks and
    verification_status gates farmer selling.
    Soft-deleted accounts (deleted_at set) can no longer sign in.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.Index("ix_users_user_type", "user_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone_number = db.Column(db.String(20), nullable=True)
    profile_picture_url = db.Column(db.String(500), nullable=True)

    user_type = db.Column(db.String(20), nullable=False)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    verification_status = db.Column(db.String(20), nullable=False, default="unverified")
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    phone_verified = db.Column(db.Boolean, nullable=False, default=False)

    # Login throttling (see login_throttle_service)
    login_attempts = db.Column(db.Integer, nullable=False, default=0)
    locked_until = db.Column(db.DateTime(timezone=True), nullable=True)
    last_login = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    farmer = db.relationship("Farmer", back_populates="user", uselist=False, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} user_type={self.user_type!r}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone_number": self.phone_number,
            "profile_picture_url": self.profile_picture_url,
            "user_type": self.user_type,
            "is_verified": self.is_verified,
            "verification_status": self.verification_status,
            "email_verified": self.email_verified,
            "phone_verified": self.phone_verified,
            "last_login": to_utc_z(self.last_login),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Farmer(db.Model):
    """
    Seller profile attached 1:1 to a farmer user.

    rating/rating_count and total_sales are denormalized aggregates that are
    recomputed inside the same transaction as the write that changes them.
    """
    __tablename__ = "farmers"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_farmers_user_id"),
        db.Index("ix_farmers_region", "region"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    farm_name = db.Column(db.String(255), nullable=False)
    farm_size = db.Column(db.Float, nullable=True)
    years_of_experience = db.Column(db.Integer, nullable=True)
    bio = db.Column(db.Text, nullable=True)
    region = db.Column(db.String(100), nullable=True)
    district = db.Column(db.String(100), nullable=True)
    town_community = db.Column(db.String(100), nullable=True)
    gps_address = db.Column(db.String(100), nullable=True)

    rating = db.Column(db.Float, nullable=False, default=0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)
    total_products_listed = db.Column(db.Integer, nullable=False, default=0)
    total_sales = db.Column(db.Integer, nullable=False, default=0)

    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    is_suspended = db.Column(db.Boolean, nullable=False, default=False)
    suspension_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    user = db.relationship("User", back_populates="farmer")

    def __repr__(self) -> str:
        return f"<Farmer id={self.id} farm_name={self.farm_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "farm_name": self.farm_name,
            "farm_size": self.farm_size,
            "years_of_experience": self.years_of_experience,
            "bio": self.bio,
            "region": self.region,
            "district": self.district,
            "rating": self.rating,
            "rating_count": self.rating_count,
            "total_products_listed": self.total_products_listed,
            "total_sales": self.total_sales,
            "is_approved": self.is_approved,
            "is_suspended": self.is_suspended,
            "created_at": to_utc_z(self.created_at),
        }


class UserAddress(db.Model):
    """Delivery address. Deleting sets is_active=False so past orders keep their FK."""
    __tablename__ = "user_addresses"
    __table_args__ = (
        db.Index("ix_user_addresses_user_active", "user_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    address_type = db.Column(db.String(20), nullable=False, default="residential")
    street_address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    region = db.Column(db.String(100), nullable=False)
    postal_code = db.Column(db.String(20), nullable=True)
    gps_address = db.Column(db.String(100), nullable=True)
    recipient_name = db.Column(db.String(200), nullable=False)
    recipient_phone = db.Column(db.String(20), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "address_type": self.address_type,
            "street_address": self.street_address,
            "city": self.city,
            "region": self.region,
            "postal_code": self.postal_code,
            "gps_address": self.gps_address,
            "recipient_name": self.recipient_name,
            "recipient_phone": self.recipient_phone,
            "is_default": self.is_default,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class UserFavorite(db.Model):
    __tablename__ = "user_favorites"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_user_favorites_user_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
