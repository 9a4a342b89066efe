# Overview: Service-layer operations for delivery partners, order assignment and completion.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import DeliveryPartner, Order, OrderTracking
from ..models.delivery import PARTNER_STATUSES
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from . import notification_service
from .concurrency import lock_for_update, run_in_transaction

ESTIMATED_DELIVERY_WINDOW = timedelta(hours=4)
ASSIGNABLE_STATUSES = ("pending", "confirmed", "processing")

PARTNER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "company_name", "vehicle_type", "vehicle_number", "license_number", "service_region",
    }),
    required_on_create=frozenset({"vehicle_type"}),
)


def get_partner_for_user(user_id: int) -> DeliveryPartner:
    partner = db.session.query(DeliveryPartner).filter(DeliveryPartner.user_id == user_id).first()
    if partner is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "PARTNER_NOT_FOUND", "Delivery partner profile not found")
    return partner


def register_partner(user_id: int, payload: dict) -> dict:
    patch = validate_payload(model=DeliveryPartner, payload=payload, policy=PARTNER_POLICY, partial=False)
    existing = db.session.query(DeliveryPartner.id).filter(DeliveryPartner.user_id == user_id).first()
    if existing:
        raise ServiceError(ErrorKind.CONFLICT, "PARTNER_EXISTS", "Delivery partner profile already exists")

    def _op():
        partner = DeliveryPartner(user_id=user_id, **patch)
        db.session.add(partner)
        return partner

    return run_in_transaction(_op).to_dict()


def get_profile(user_id: int) -> dict:
    return get_partner_for_user(user_id).to_dict()


def update_status(user_id: int, status) -> dict:
    if status not in PARTNER_STATUSES:
        raise ServiceError(
            ErrorKind.VALIDATION,
            "INVALID_STATUS",
            f"Status must be one of: {', '.join(PARTNER_STATUSES)}",
            {"field": "status"},
        )
    partner = get_partner_for_user(user_id)
    partner.current_status = status
    db.session.commit()
    return partner.to_dict()


def list_available(region: str | None = None) -> list[dict]:
    query = db.session.query(DeliveryPartner).filter(DeliveryPartner.current_status == "available")
    if region:
        query = query.filter(DeliveryPartner.service_region == region)
    rows = query.order_by(DeliveryPartner.rating.desc(), DeliveryPartner.id).all()
    return [p.to_dict() for p in rows]


def assign_order(order_id, partner_id, actor_id: int | None = None) -> dict:
    """Attach a partner to the order's tracking row and mark the order dispatched."""
    if not order_id or not partner_id:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "order_id and partner_id are required")

    def _op():
        order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
        if order is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
        if order.status not in ASSIGNABLE_STATUSES:
            raise ServiceError(
                ErrorKind.VALIDATION,
                "INVALID_ORDER_STATUS",
                f"Cannot assign an order with status {order.status}",
                {"status": order.status},
            )
        partner = db.session.get(DeliveryPartner, partner_id)
        if partner is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "PARTNER_NOT_FOUND", "Delivery partner not found")

        tracking = order.tracking
        if tracking is None:
            tracking = OrderTracking(order_id=order.id)
            db.session.add(tracking)
        now = utcnow()
        tracking.delivery_partner_id = partner.id
        tracking.estimated_delivery = now + ESTIMATED_DELIVERY_WINDOW

        order.status = "dispatched"
        order.dispatched_at = now
        partner.current_status = "busy"

        notification_service.notify(
            order.buyer_id, "order_dispatched", "Order dispatched",
            f"Your order {order.order_number} is on its way.",
            resource_type="order", resource_id=order.id,
        )
        notification_service.notify(
            partner.user_id, "delivery_assigned", "New delivery",
            f"Order {order.order_number} has been assigned to you.",
            resource_type="order", resource_id=order.id,
        )
        return tracking

    tracking = run_in_transaction(_op)
    current_app.logger.info("Order %s assigned to delivery partner %s by %s", order_id, partner_id, actor_id)
    return tracking.to_dict()


def complete_delivery(order_id: int, user_id: int) -> dict:
    partner = get_partner_for_user(user_id)

    def _op():
        order = lock_for_update(db.session.query(Order).filter(Order.id == order_id)).first()
        if order is None or order.tracking is None or order.tracking.delivery_partner_id != partner.id:
            raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
        if order.status != "dispatched":
            raise ServiceError(
                ErrorKind.VALIDATION,
                "INVALID_ORDER_STATUS",
                f"Cannot complete an order with status {order.status}",
                {"status": order.status},
            )
        now = utcnow()
        order.status = "delivered"
        order.delivered_at = now
        order.tracking.actual_delivery = now

        locked = lock_for_update(db.session.query(DeliveryPartner).filter(DeliveryPartner.id == partner.id)).one()
        locked.completed_deliveries = (locked.completed_deliveries or 0) + 1
        locked.current_status = "available"

        notification_service.notify(
            order.buyer_id, "order_delivered", "Order delivered",
            f"Your order {order.order_number} has been delivered.",
            resource_type="order", resource_id=order.id,
        )
        return order.tracking

    return run_in_transaction(_op).to_dict()


def pending_deliveries(user_id: int) -> list[dict]:
    partner = get_partner_for_user(user_id)
    orders = (
        db.session.query(Order)
        .join(OrderTracking, OrderTracking.order_id == Order.id)
        .filter(OrderTracking.delivery_partner_id == partner.id, Order.status == "dispatched")
        .order_by(Order.dispatched_at, Order.id)
        .all()
    )
    return [o.to_dict(include_items=True) for o in orders]


def partner_stats(user_id: int) -> dict:
    partner = get_partner_for_user(user_id)
    in_progress = (
        db.session.query(Order)
        .join(OrderTracking, OrderTracking.order_id == Order.id)
        .filter(OrderTracking.delivery_partner_id == partner.id, Order.status == "dispatched")
        .count()
    )
    return {
        "completed_deliveries": partner.completed_deliveries,
        "in_progress": in_progress,
        "rating": partner.rating,
        "current_status": partner.current_status,
    }
