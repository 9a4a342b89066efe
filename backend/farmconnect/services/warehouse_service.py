# Overview: Service-layer operations for warehouses; locations, the stock ledger and inventory reads.

"""
Warehouse Inventory Invariants (authoritative)

Ledger model:
- WarehouseInventory.quantity_on_hand is the current quantity per (warehouse, product).
- Every change to quantity_on_hand appends exactly one StockMovement in the
  same unit of work: quantity is signed (+ inbound, - outbound/custom reason).
- StockMovement rows are never updated or deleted by the API.

Business invariants:
- quantity_on_hand never goes negative; a removal larger than on-hand fails
  with INSUFFICIENT_INVENTORY and writes nothing.
- WarehouseLocation.current_stock_value_cents = SUM(quantity_on_hand * live product price),
  recomputed inside every inventory mutation. Price changes alone do not
  refresh it.
- There is no reservation/hold; concurrent removals serialize on the locked
  inventory row.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import func, case

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import WarehouseLocation, WarehouseInventory, StockMovement, Product
from ..money import from_cents
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload, positive_int, require_fields
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate

DEFAULT_REORDER_LEVEL = 50
RECENT_MOVEMENT_WINDOW = timedelta(days=7)

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "location", "region", "gps_address", "capacity_kg", "manager_id", "is_active",
    }),
    required_on_create=frozenset({"name", "location", "region"}),
)


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


def _get_location(warehouse_id: int) -> WarehouseLocation:
    warehouse = db.session.get(WarehouseLocation, warehouse_id)
    if warehouse is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "WAREHOUSE_NOT_FOUND", "Warehouse not found")
    return warehouse


def create_location(payload: dict) -> dict:
    patch = validate_payload(model=WarehouseLocation, payload=payload, policy=LOCATION_POLICY, partial=False)
    if db.session.query(WarehouseLocation.id).filter(WarehouseLocation.name == patch["name"]).first():
        raise ServiceError(ErrorKind.CONFLICT, "DUPLICATE_WAREHOUSE", "A warehouse with this name already exists")

    def _op():
        warehouse = WarehouseLocation(**patch)
        db.session.add(warehouse)
        return warehouse

    return run_in_transaction(_op).to_dict()


def list_locations(*, region: str | None = None, is_active: bool | None = None) -> list[dict]:
    query = db.session.query(WarehouseLocation)
    if region:
        query = query.filter(WarehouseLocation.region == region)
    if is_active is not None:
        query = query.filter(WarehouseLocation.is_active.is_(is_active))
    return [w.to_dict() for w in query.order_by(WarehouseLocation.name).all()]


def get_location(warehouse_id: int) -> dict:
    return _get_location(warehouse_id).to_dict()


def update_location(warehouse_id: int, payload: dict) -> dict:
    patch = validate_payload(model=WarehouseLocation, payload=payload, policy=LOCATION_POLICY, partial=True)

    def _op():
        warehouse = _get_location(warehouse_id)
        if "name" in patch and patch["name"] != warehouse.name:
            taken = (
                db.session.query(WarehouseLocation.id)
                .filter(WarehouseLocation.name == patch["name"], WarehouseLocation.id != warehouse.id)
                .first()
            )
            if taken:
                raise ServiceError(
                    ErrorKind.CONFLICT, "DUPLICATE_WAREHOUSE", "A warehouse with this name already exists"
                )
        for key, value in patch.items():
            setattr(warehouse, key, value)
        return warehouse

    return run_in_transaction(_op).to_dict()


# ---------------------------------------------------------------------------
# Ledger mutations
# ---------------------------------------------------------------------------


def _recompute_stock_value(warehouse: WarehouseLocation) -> None:
    db.session.flush()
    total = (
        db.session.query(func.coalesce(func.sum(WarehouseInventory.quantity_on_hand * Product.price_cents), 0))
        .join(Product, Product.id == WarehouseInventory.product_id)
        .filter(WarehouseInventory.warehouse_id == warehouse.id)
        .scalar()
    )
    warehouse.current_stock_value_cents = int(total or 0)


def _movement_args(payload: dict) -> tuple[int, int, int]:
    require_fields(payload, ("warehouse_id", "product_id", "quantity"))
    return (
        positive_int(payload["warehouse_id"], field="warehouse_id", code="INVALID_WAREHOUSE"),
        positive_int(payload["product_id"], field="product_id", code="INVALID_PRODUCT"),
        positive_int(payload["quantity"]),
    )


def add_inventory(payload: dict, actor_id: int | None = None) -> dict:
    """Receive stock: upsert the inventory row, append an 'inbound' movement, refresh stock value."""
    warehouse_id, product_id, quantity = _movement_args(payload)
    reference_id = payload.get("reference_id")
    notes = payload.get("notes")

    def _op():
        warehouse = lock_for_update(
            db.session.query(WarehouseLocation).filter(WarehouseLocation.id == warehouse_id)
        ).first()
        if warehouse is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "WAREHOUSE_NOT_FOUND", "Warehouse not found")
        if db.session.get(Product, product_id) is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "PRODUCT_NOT_FOUND", "Product not found")

        now = utcnow()
        row = lock_for_update(
            db.session.query(WarehouseInventory).filter(
                WarehouseInventory.warehouse_id == warehouse_id,
                WarehouseInventory.product_id == product_id,
            )
        ).first()
        if row is None:
            row = WarehouseInventory(
                warehouse_id=warehouse_id,
                product_id=product_id,
                quantity_on_hand=0,
                reorder_level=DEFAULT_REORDER_LEVEL,
            )
            db.session.add(row)
        row.quantity_on_hand = (row.quantity_on_hand or 0) + quantity
        row.last_restock_date = now

        db.session.add(StockMovement(
            warehouse_id=warehouse_id,
            product_id=product_id,
            movement_type="inbound",
            quantity=quantity,
            reference_id=reference_id,
            notes=notes or f"inbound: {quantity} units",
            created_by=actor_id,
            created_at=now,
        ))
        _recompute_stock_value(warehouse)
        return row

    row = run_in_transaction(_op)
    current_app.logger.info(
        "Inventory added: warehouse_id=%s product_id=%s quantity=%s by=%s",
        warehouse_id, product_id, quantity, actor_id,
    )
    return row.to_dict()


def remove_inventory(payload: dict, actor_id: int | None = None) -> dict:
    """
    Remove stock for a reason (default 'outbound').

    Raises INVENTORY_NOT_FOUND (404) when no row exists and
    INSUFFICIENT_INVENTORY (400) when on-hand is lower than requested.
    """
    warehouse_id, product_id, quantity = _movement_args(payload)
    reason = payload.get("reason")
    if reason is not None and not isinstance(reason, str):
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_REASON", "reason must be a string", {"field": "reason"})
    reason = (reason or "outbound").strip() or "outbound"
    if len(reason) > 30:
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_REASON", "reason exceeds max length 30", {"field": "reason"})
    reference_id = payload.get("reference_id")

    def _op():
        warehouse = lock_for_update(
            db.session.query(WarehouseLocation).filter(WarehouseLocation.id == warehouse_id)
        ).first()
        if warehouse is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "WAREHOUSE_NOT_FOUND", "Warehouse not found")

        row = lock_for_update(
            db.session.query(WarehouseInventory).filter(
                WarehouseInventory.warehouse_id == warehouse_id,
                WarehouseInventory.product_id == product_id,
            )
        ).first()
        if row is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "INVENTORY_NOT_FOUND", "Inventory record not found")
        if row.quantity_on_hand < quantity:
            raise ServiceError(
                ErrorKind.VALIDATION,
                "INSUFFICIENT_INVENTORY",
                f"Insufficient inventory: {row.quantity_on_hand} on hand, {quantity} requested",
                {"on_hand": row.quantity_on_hand, "requested": quantity},
            )

        row.quantity_on_hand -= quantity
        db.session.add(StockMovement(
            warehouse_id=warehouse_id,
            product_id=product_id,
            movement_type=reason,
            quantity=-quantity,
            reference_id=reference_id,
            notes=payload.get("notes") or f"{reason}: {quantity} units",
            created_by=actor_id,
            created_at=utcnow(),
        ))
        _recompute_stock_value(warehouse)
        return row

    row = run_in_transaction(_op)
    current_app.logger.info(
        "Inventory removed: warehouse_id=%s product_id=%s quantity=%s reason=%s by=%s",
        warehouse_id, product_id, quantity, reason, actor_id,
    )
    return row.to_dict()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _inventory_dict(row: WarehouseInventory) -> dict:
    data = row.to_dict()
    data["inventory_value"] = from_cents(row.quantity_on_hand * row.product.price_cents) if row.product else None
    data["category_name"] = row.product.category.name if row.product and row.product.category else None
    return data


def list_inventory(warehouse_id: int, *, page=None, limit=None):
    _get_location(warehouse_id)
    query = (
        db.session.query(WarehouseInventory)
        .join(Product, Product.id == WarehouseInventory.product_id)
        .filter(WarehouseInventory.warehouse_id == warehouse_id)
        .order_by(Product.name, WarehouseInventory.id)
    )
    items, meta = paginate(query, page, limit)
    return [_inventory_dict(row) for row in items], meta


def low_stock(warehouse_id: int) -> list[dict]:
    _get_location(warehouse_id)
    rows = (
        db.session.query(WarehouseInventory)
        .filter(
            WarehouseInventory.warehouse_id == warehouse_id,
            WarehouseInventory.quantity_on_hand <= WarehouseInventory.reorder_level,
        )
        .order_by(WarehouseInventory.quantity_on_hand, WarehouseInventory.id)
        .all()
    )
    return [_inventory_dict(row) for row in rows]


def list_movements(warehouse_id: int, *, product_id: int | None = None, page=None, limit=None):
    _get_location(warehouse_id)
    query = db.session.query(StockMovement).filter(StockMovement.warehouse_id == warehouse_id)
    if product_id:
        query = query.filter(StockMovement.product_id == product_id)
    items, meta = paginate(query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()), page, limit)
    return [m.to_dict() for m in items], meta


def stats(warehouse_id: int) -> dict:
    warehouse = _get_location(warehouse_id)
    total_products, total_quantity, low_stock_items = (
        db.session.query(
            func.count(func.distinct(WarehouseInventory.product_id)),
            func.coalesce(func.sum(WarehouseInventory.quantity_on_hand), 0),
            func.coalesce(func.sum(case(
                (WarehouseInventory.quantity_on_hand <= WarehouseInventory.reorder_level, 1), else_=0,
            )), 0),
        )
        .filter(WarehouseInventory.warehouse_id == warehouse_id)
        .one()
    )
    recent_movements = (
        db.session.query(StockMovement)
        .filter(
            StockMovement.warehouse_id == warehouse_id,
            StockMovement.created_at >= utcnow() - RECENT_MOVEMENT_WINDOW,
        )
        .count()
    )
    return {
        "id": warehouse.id,
        "name": warehouse.name,
        "capacity_kg": warehouse.capacity_kg,
        "current_stock_value": from_cents(warehouse.current_stock_value_cents),
        "total_products": int(total_products or 0),
        "total_quantity": int(total_quantity or 0),
        "low_stock_items": int(low_stock_items or 0),
        "recent_movements": recent_movements,
    }


def search_inventory(warehouse_id: int, term: str | None, limit: int = 20) -> list[dict]:
    _get_location(warehouse_id)
    if not term:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "Search term is required", {"field": "q"})
    rows = (
        db.session.query(WarehouseInventory)
        .join(Product, Product.id == WarehouseInventory.product_id)
        .filter(WarehouseInventory.warehouse_id == warehouse_id, Product.name.ilike(f"%{term.strip()}%"))
        .order_by(Product.name)
        .limit(max(1, min(limit, 100)))
        .all()
    )
    return [_inventory_dict(row) for row in rows]
