from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z


class WarehouseLocation(db.Model):
    """current_stock_value_cents is recomputed on every inventory mutation."""
    __tablename__ = "warehouse_locations"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_warehouse_locations_name"),
        db.Index("ix_warehouse_locations_region", "region"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(255), nullable=False)
    region = db.Column(db.String(100), nullable=False)
    gps_address = db.Column(db.String(100), nullable=True)
    capacity_kg = db.Column(db.Integer, nullable=True)
    current_stock_value_cents = db.Column(db.Integer, nullable=False, default=0)
    manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "region": self.region,
            "gps_address": self.gps_address,
            "capacity_kg": self.capacity_kg,
            "current_stock_value": from_cents(self.current_stock_value_cents),
            "current_stock_value_cents": self.current_stock_value_cents,
            "manager_id": self.manager_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class WarehouseInventory(db.Model):
    """
    On-hand quantity of one product at one warehouse.

    WHY: quantity_on_hand is only changed together with a StockMovement
    row; it never goes negative.
    """
    __tablename__ = "warehouse_inventory"
    __table_args__ = (
        db.UniqueConstraint("warehouse_id", "product_id", name="uq_warehouse_inventory_warehouse_product"),
        db.CheckConstraint("quantity_on_hand >= 0", name="ck_warehouse_inventory_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(
        db.Integer, db.ForeignKey("warehouse_locations.id", ondelete="CASCADE"), nullable=False
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)
    quantity_reserved = db.Column(db.Integer, nullable=False, default=0)
    quantity_damaged = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=50)
    last_restock_date = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    product = db.relationship("Product")
    warehouse = db.relationship("WarehouseLocation", backref=db.backref("inventory", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "unit": self.product.unit if self.product else None,
            "price": from_cents(self.product.price_cents) if self.product else None,
            "quantity_on_hand": self.quantity_on_hand,
            "quantity_reserved": self.quantity_reserved,
            "quantity_damaged": self.quantity_damaged,
            "reorder_level": self.reorder_level,
            "last_restock_date": to_utc_z(self.last_restock_date),
        }


class StockMovement(db.Model):
    """Append-only ledger; quantity is signed (+inbound, -outbound)."""
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_warehouse_created", "warehouse_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(
        db.Integer, db.ForeignKey("warehouse_locations.id", ondelete="CASCADE"), nullable=False
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    movement_type = db.Column(db.String(30), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reference_id = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
