# Overview: Service-layer operations for orders; checkout, cancellation and status changes.

"""
Order Service

WHY: Checkout turns a cart into an order as ONE unit of work. Either all of
these commit or none do:
- Order + OrderItem rows (prices frozen from the cart)
- product stock decrement and total_sold increment
- farmer total_sales increment
- OrderTracking row
- cart clearing

CONCURRENCY:
- Product rows are read with SELECT ... FOR UPDATE (PostgreSQL honours it)
- Product.version_id makes a stale concurrent decrement raise StaleDataError,
  which rolls back and re-runs the whole unit of work (run_in_transaction)
- Stock never goes negative: each line is checked against the locked row
"""

from __future__ import annotations

import secrets
import time

from flask import current_app

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import (
    CartItem, Farmer, Order, OrderItem, OrderTracking, Product, ShoppingCart, UserAddress,
)
from ..models.orders import ORDER_STATUSES, ORDER_PAYMENT_STATUSES, CANCELLABLE_STATUSES
from ..time_utils import utcnow
from . import notification_service, audit_service
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate
from .product_service import get_farmer_for_user

BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Legal (current -> next) moves, enforced only when STRICT_ORDER_TRANSITIONS is on.
ORDER_TRANSITIONS = {
    "pending": {"confirmed", "processing", "cancelled"},
    "confirmed": {"processing", "dispatched", "cancelled"},
    "processing": {"dispatched", "cancelled"},
    "dispatched": {"delivered", "returned"},
    "delivered": {"returned"},
    "cancelled": set(),
    "returned": set(),
}

PAYMENT_TRANSITIONS = {
    "pending": {"processing", "paid", "failed"},
    "processing": {"paid", "failed"},
    "paid": {"refunded"},
    "failed": {"pending", "processing"},
    "refunded": set(),
}


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36[rem])
    return "".join(reversed(digits))


def generate_order_number() -> str:
    """ORD-<base36 ms timestamp>-<5 random base36 chars>. Uniqueness is probabilistic."""
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(BASE36) for _ in range(5))
    return f"ORD-{stamp}-{suffix}"


def _strict_transitions() -> bool:
    return bool(current_app.config.get("STRICT_ORDER_TRANSITIONS"))


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


def create_order(buyer_id: int, payload: dict) -> dict:
    """
    Convert the buyer's cart into an order.

    Raises:
        EMPTY_CART (400), INVALID_ADDRESS (400), INSUFFICIENT_STOCK (400)
    """
    address_id = payload.get("delivery_address_id")
    payment_method = payload.get("payment_method")
    special_instructions = payload.get("special_instructions")
    if not address_id:
        raise ServiceError(
            ErrorKind.VALIDATION, "MISSING_FIELDS", "delivery_address_id is required", {"field": "delivery_address_id"}
        )

    delivery_fee_cents = current_app.config["DELIVERY_FEE_CENTS"]

    def _op():
        cart_items = (
            db.session.query(CartItem)
            .join(ShoppingCart, ShoppingCart.id == CartItem.cart_id)
            .filter(ShoppingCart.user_id == buyer_id)
            .order_by(CartItem.id)
            .all()
        )
        if not cart_items:
            raise ServiceError(ErrorKind.VALIDATION, "EMPTY_CART", "Cart is empty")

        address = (
            db.session.query(UserAddress)
            .filter(
                UserAddress.id == address_id,
                UserAddress.user_id == buyer_id,
                UserAddress.is_active.is_(True),
            )
            .first()
        )
        if address is None:
            raise ServiceError(ErrorKind.VALIDATION, "INVALID_ADDRESS", "Invalid delivery address")

        # Lock in id order so concurrent checkouts acquire rows consistently
        product_ids = sorted({item.product_id for item in cart_items})
        products = {
            p.id: p
            for p in lock_for_update(
                db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
            ).all()
        }

        for item in cart_items:
            product = products.get(item.product_id)
            if product is None or not product.is_listed:
                raise ServiceError(
                    ErrorKind.VALIDATION,
                    "PRODUCT_UNAVAILABLE",
                    f"Product {item.product_id} is no longer available",
                    {"product_id": item.product_id},
                )
            if product.quantity_available < item.quantity:
                raise ServiceError(
                    ErrorKind.VALIDATION,
                    "INSUFFICIENT_STOCK",
                    f"Insufficient stock for {product.name}",
                    {
                        "product_id": product.id,
                        "product_name": product.name,
                        "requested": item.quantity,
                        "available": product.quantity_available,
                    },
                )

        subtotal_cents = sum(item.quantity * item.unit_price_cents for item in cart_items)
        order = Order(
            order_number=generate_order_number(),
            buyer_id=buyer_id,
            delivery_address_id=address.id,
            subtotal_cents=subtotal_cents,
            delivery_fee_cents=delivery_fee_cents,
            total_cents=subtotal_cents + delivery_fee_cents,
            status="pending",
            payment_status="pending",
            payment_method=payment_method,
            special_instructions=special_instructions,
        )
        db.session.add(order)
        db.session.flush()

        sales_by_farmer: dict[int, int] = {}
        for item in cart_items:
            product = products[item.product_id]
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                farmer_id=product.farmer_id,
                product_name=product.name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                subtotal_cents=item.quantity * item.unit_price_cents,
            ))
            product.quantity_available -= item.quantity
            product.total_sold = (product.total_sold or 0) + item.quantity
            sales_by_farmer[product.farmer_id] = sales_by_farmer.get(product.farmer_id, 0) + item.quantity

        for farmer in lock_for_update(
            db.session.query(Farmer).filter(Farmer.id.in_(sorted(sales_by_farmer))).order_by(Farmer.id)
        ).all():
            farmer.total_sales = (farmer.total_sales or 0) + sales_by_farmer[farmer.id]

        db.session.add(OrderTracking(order_id=order.id))

        for item in cart_items:
            db.session.delete(item)

        notification_service.notify(
            buyer_id,
            "order_created",
            "Order placed",
            f"Your order {order.order_number} has been placed.",
            resource_type="order",
            resource_id=order.id,
        )
        return order

    order = run_in_transaction(_op)
    current_app.logger.info(
        "Order created: order_id=%s number=%s buyer_id=%s total_cents=%s",
        order.id, order.order_number, buyer_id, order.total_cents,
    )
    return order.to_dict(include_items=True)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


def cancel_order(order_id: int, buyer_id: int, reason: str | None = None) -> dict:
    """
    Compensating transaction: restore stock and counters for a pending or
    confirmed order. Counters are floored at zero.
    """
    def _op():
        order = lock_for_update(
            db.session.query(Order).filter(Order.id == order_id, Order.buyer_id == buyer_id)
        ).first()
        if order is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
        if order.status not in CANCELLABLE_STATUSES:
            raise ServiceError(
                ErrorKind.VALIDATION,
                "INVALID_ORDER_STATUS",
                f"Cannot cancel order with status {order.status}",
                {"status": order.status},
            )

        product_ids = sorted({item.product_id for item in order.items})
        products = {
            p.id: p
            for p in lock_for_update(
                db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
            ).all()
        }
        restored_by_farmer: dict[int, int] = {}
        for item in order.items:
            product = products.get(item.product_id)
            if product is not None:
                product.quantity_available += item.quantity
                product.total_sold = max(0, (product.total_sold or 0) - item.quantity)
            restored_by_farmer[item.farmer_id] = restored_by_farmer.get(item.farmer_id, 0) + item.quantity

        for farmer in lock_for_update(
            db.session.query(Farmer).filter(Farmer.id.in_(sorted(restored_by_farmer))).order_by(Farmer.id)
        ).all():
            farmer.total_sales = max(0, (farmer.total_sales or 0) - restored_by_farmer[farmer.id])

        order.status = "cancelled"
        order.cancelled_at = utcnow()
        if reason and order.tracking is not None:
            order.tracking.delivery_notes = f"Cancelled: {reason}"

        notification_service.notify(
            buyer_id,
            "order_cancelled",
            "Order cancelled",
            f"Your order {order.order_number} has been cancelled.",
            resource_type="order",
            resource_id=order.id,
        )
        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Order cancelled: order_id=%s buyer_id=%s", order.id, buyer_id)
    return order.to_dict(include_items=True)


# ---------------------------------------------------------------------------
# Status changes (admin)
# ---------------------------------------------------------------------------


def _check_transition(current: str, requested: str, table: dict) -> None:
    if _strict_transitions() and requested != current and requested not in table.get(current, set()):
        raise ServiceError(
            ErrorKind.CONFLICT,
            "INVALID_STATUS_TRANSITION",
            f"Cannot move from {current} to {requested}",
            {"current": current, "requested": requested},
        )


def update_order_status(order_id: int, status: str | None, actor_id: int | None = None) -> dict:
    if status not in ORDER_STATUSES:
        raise ServiceError(
            ErrorKind.VALIDATION,
            "INVALID_STATUS",
            f"Status must be one of: {', '.join(ORDER_STATUSES)}",
            {"field": "status"},
        )

    def _op():
        order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
        if order is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
        previous = order.status
        _check_transition(previous, status, ORDER_TRANSITIONS)

        order.status = status
        now = utcnow()
        if status == "dispatched":
            order.dispatched_at = now
        elif status == "delivered":
            order.delivered_at = now
        elif status == "cancelled":
            order.cancelled_at = now

        audit_service.log_action(
            actor_id,
            "order.status_update",
            resource_type="order",
            resource_id=order.id,
            old_values={"status": previous},
            new_values={"status": status},
        )
        notification_service.notify(
            order.buyer_id,
            "order_status",
            "Order update",
            f"Your order {order.order_number} is now {status}.",
            resource_type="order",
            resource_id=order.id,
        )
        return order

    return run_in_transaction(_op).to_dict()


def update_payment_status(order_id: int, payment_status: str | None, actor_id: int | None = None) -> dict:
    if payment_status not in ORDER_PAYMENT_STATUSES:
        raise ServiceError(
            ErrorKind.VALIDATION,
            "INVALID_PAYMENT_STATUS",
            f"Payment status must be one of: {', '.join(ORDER_PAYMENT_STATUSES)}",
            {"field": "payment_status"},
        )

    def _op():
        order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
        if order is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
        apply_payment_status(order, payment_status)
        if actor_id is not None:
            audit_service.log_action(
                actor_id,
                "order.payment_status_update",
                resource_type="order",
                resource_id=order.id,
                new_values={"payment_status": payment_status},
            )
        return order

    return run_in_transaction(_op).to_dict()


def apply_payment_status(order: Order, payment_status: str) -> None:
    """Set payment_status on a loaded order; 'paid' stamps paid_at. Caller commits."""
    _check_transition(order.payment_status, payment_status, PAYMENT_TRANSITIONS)
    order.payment_status = payment_status
    if payment_status == "paid" and order.paid_at is None:
        order.paid_at = utcnow()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def list_user_orders(buyer_id: int, *, status=None, payment_status=None, page=None, limit=None):
    query = db.session.query(Order).filter(Order.buyer_id == buyer_id)
    if status:
        query = query.filter(Order.status == status)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    items, meta = paginate(query.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)
    return [o.to_dict() for o in items], meta


def get_order(order_id: int, user_id: int, *, is_admin: bool = False) -> dict:
    query = db.session.query(Order).filter(Order.id == order_id)
    if not is_admin:
        query = query.filter(Order.buyer_id == user_id)
    order = query.first()
    if order is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
    return order.to_dict(include_items=True)


def list_farmer_orders(user_id: int, *, status=None, page=None, limit=None):
    """Orders containing at least one of the farmer's products, with only that farmer's lines."""
    farmer = get_farmer_for_user(user_id)
    query = (
        db.session.query(Order)
        .filter(Order.id.in_(db.session.query(OrderItem.order_id).filter(OrderItem.farmer_id == farmer.id)))
    )
    if status:
        query = query.filter(Order.status == status)
    orders, meta = paginate(query.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)

    results = []
    for order in orders:
        data = order.to_dict()
        data["items"] = [item.to_dict() for item in order.items if item.farmer_id == farmer.id]
        results.append(data)
    return results, meta
