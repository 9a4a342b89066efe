from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z

ORDER_STATUSES = ("pending", "confirmed", "processing", "dispatched", "delivered", "cancelled", "returned")
ORDER_PAYMENT_STATUSES = ("pending", "processing", "paid", "failed", "refunded")
CANCELLABLE_STATUSES = ("pending", "confirmed")


class ShoppingCart(db.Model):
    """One cart per user, created lazily on first access."""
    __tablename__ = "shopping_carts"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_shopping_carts_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    items = db.relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id"
    )


class CartItem(db.Model):
    """
    unit_price_cents is frozen when the product is first added; later price
    changes are reported by cart validation, not applied silently.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        db.CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("shopping_carts.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cart = db.relationship("ShoppingCart", back_populates="items")
    product = db.relationship("Product")

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        product = self.product
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": product.name if product else None,
            "unit": product.unit if product else None,
            "main_image_url": product.main_image_url if product else None,
            "farm_name": product.farmer.farm_name if product and product.farmer else None,
            "quantity_available": product.quantity_available if product else 0,
            "quantity": self.quantity,
            "unit_price": from_cents(self.unit_price_cents),
            "unit_price_cents": self.unit_price_cents,
            "subtotal": from_cents(self.subtotal_cents),
            "subtotal_cents": self.subtotal_cents,
            "added_at": to_utc_z(self.added_at),
        }


class Order(db.Model):
    """
    A buyer's order.

    WHY: Created atomically from the cart; stock decrements, counters,
    tracking row and cart clearing commit together or not at all.
    total_cents == subtotal_cents + delivery_fee_cents (+ tax - discount).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_buyer_created", "buyer_id", "created_at"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(50), nullable=False)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    delivery_address_id = db.Column(db.Integer, db.ForeignKey("user_addresses.id"), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    delivery_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending")
    payment_status = db.Column(db.String(20), nullable=False, default="pending")
    payment_method = db.Column(db.String(50), nullable=True)
    special_instructions = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    dispatched_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    buyer = db.relationship("User")
    delivery_address = db.relationship("UserAddress")
    items = db.relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    tracking = db.relationship(
        "OrderTracking", back_populates="order", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status!r}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "buyer_id": self.buyer_id,
            "delivery_address_id": self.delivery_address_id,
            "subtotal": from_cents(self.subtotal_cents),
            "delivery_fee": from_cents(self.delivery_fee_cents),
            "tax": from_cents(self.tax_cents),
            "discount": from_cents(self.discount_cents),
            "total_amount": from_cents(self.total_cents),
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "special_instructions": self.special_instructions,
            "item_count": len(self.items),
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at),
            "dispatched_at": to_utc_z(self.dispatched_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["tracking"] = self.tracking.to_dict() if self.tracking else None
            data["delivery_address"] = self.delivery_address.to_dict() if self.delivery_address else None
        return data


class OrderItem(db.Model):
    """Snapshot of what was bought; product_name survives later product edits."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.Index("ix_order_items_order_id", "order_id"),
        db.Index("ix_order_items_farmer_id", "farmer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    farmer_id = db.Column(db.Integer, db.ForeignKey("farmers.id"), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "farmer_id": self.farmer_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": from_cents(self.unit_price_cents),
            "subtotal": from_cents(self.subtotal_cents),
        }


class OrderTracking(db.Model):
    __tablename__ = "order_tracking"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_order_tracking_order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    delivery_partner_id = db.Column(db.Integer, db.ForeignKey("delivery_partners.id"), nullable=True)
    current_location = db.Column(db.String(255), nullable=True)
    estimated_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    delivery_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    order = db.relationship("Order", back_populates="tracking")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "delivery_partner_id": self.delivery_partner_id,
            "current_location": self.current_location,
            "estimated_delivery": to_utc_z(self.estimated_delivery),
            "actual_delivery": to_utc_z(self.actual_delivery),
            "delivery_notes": self.delivery_notes,
        }
