from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z


class ProductCategory(db.Model):
    __tablename__ = "product_categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_product_categories_name"),
        db.UniqueConstraint("slug", name="uq_product_categories_slug"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    icon_url = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "icon_url": self.icon_url,
            "display_order": self.display_order,
        }


class Product(db.Model):
    """
    A farmer's listing.

    WHY: quantity_available is the sellable stock and must never go negative.
    version_id is an optimistic lock: a concurrent order that decremented
    the same row first makes a stale writer fail with StaleDataError
    instead of overwriting the newer quantity.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("farmer_id", "slug", name="uq_products_farmer_slug"),
        db.CheckConstraint("quantity_available >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_category_active", "category_id", "is_active"),
        db.Index("ix_products_farmer_id", "farmer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    farmer_id = db.Column(db.Integer, db.ForeignKey("farmers.id", ondelete="CASCADE"), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("product_categories.id"), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    long_description = db.Column(db.Text, nullable=True)

    price_cents = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="kg")
    quantity_available = db.Column(db.Integer, nullable=False, default=0)
    min_order_quantity = db.Column(db.Integer, nullable=False, default=1)

    main_image_url = db.Column(db.String(500), nullable=True)
    image_urls = db.Column(db.JSON, nullable=True)

    rating = db.Column(db.Float, nullable=False, default=0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)
    total_sold = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    farmer = db.relationship("Farmer", backref=db.backref("products", lazy=True))
    category = db.relationship("ProductCategory")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} slug={self.slug!r} farmer_id={self.farmer_id}>"

    @property
    def is_listed(self) -> bool:
        return bool(self.is_active) and self.deleted_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "farmer_id": self.farmer_id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "farm_name": self.farmer.farm_name if self.farmer else None,
            "region": self.farmer.region if self.farmer else None,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "long_description": self.long_description,
            "price": from_cents(self.price_cents),
            "price_cents": self.price_cents,
            "unit": self.unit,
            "quantity_available": self.quantity_available,
            "min_order_quantity": self.min_order_quantity,
            "main_image_url": self.main_image_url,
            "image_urls": self.image_urls or [],
            "rating": self.rating,
            "rating_count": self.rating_count,
            "total_sold": self.total_sold,
            "is_active": self.is_active,
            "is_featured": self.is_featured,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductReview(db.Model):
    """One review per (product, buyer); a second submission overwrites the first."""
    __tablename__ = "product_reviews"
    __table_args__ = (
        db.UniqueConstraint("product_id", "buyer_id", name="uq_product_reviews_product_buyer"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_reviews_rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    rating = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(255), nullable=True)
    comment = db.Column(db.Text, nullable=True)
    helpful_count = db.Column(db.Integer, nullable=False, default=0)
    is_verified_purchase = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    buyer = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "buyer_id": self.buyer_id,
            "buyer_name": self.buyer.full_name if self.buyer else None,
            "order_id": self.order_id,
            "rating": self.rating,
            "title": self.title,
            "comment": self.comment,
            "helpful_count": self.helpful_count,
            "is_verified_purchase": self.is_verified_purchase,
            "created_at": to_utc_z(self.created_at),
        }
