# Overview: Service-layer operations for payments; transactions, provider callback and saved methods.

"""
Payment Service

WHY: The mobile-money provider is an external collaborator. Initiation is
mocked (logged) and the provider reports the outcome through the callback
webhook. A successful callback marks the transaction completed AND the
order paid in the same unit of work.
"""

from __future__ import annotations

import secrets

from flask import current_app
from sqlalchemy import func, case

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import Order, PaymentTransaction, PaymentMethod
from ..models.payments import PAYMENT_METHOD_TYPES
from ..money import from_cents
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload, require_fields
from . import notification_service
from .concurrency import lock_for_update, run_in_transaction
from .order_service import apply_payment_status

MOBILE_MONEY_PROVIDERS = ("mtn", "vodafone", "airteltigo")

PAYMENT_METHOD_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"method_type", "provider", "account_name", "account_number", "is_default"}),
    required_on_create=frozenset({"method_type", "account_number"}),
)


def _new_reference() -> str:
    return f"PAY-{secrets.token_hex(8).upper()}"


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def create_transaction(*, order: Order, user_id: int, payment_method: str, phone_number: str | None) -> PaymentTransaction:
    """Add a pending transaction for the order's total (caller commits)."""
    transaction = PaymentTransaction(
        order_id=order.id,
        user_id=user_id,
        transaction_reference=_new_reference(),
        amount_cents=order.total_cents,
        currency=current_app.config.get("CURRENCY", "GHS"),
        payment_method=payment_method,
        phone_number=phone_number,
        status="pending",
    )
    db.session.add(transaction)
    db.session.flush()
    return transaction


def initiate_payment(user_id: int, payload: dict) -> dict:
    """
    Create a transaction for the caller's order and hand it to the provider.

    The provider call is mocked: it is logged and the transaction moves to
    'processing' with a provider payment reference.
    """
    require_fields(payload, ("order_id", "payment_method", "phone_number"))
    payment_method = str(payload["payment_method"]).lower()
    provider = str(payload.get("provider") or payment_method).lower()

    def _op():
        order = (
            db.session.query(Order)
            .filter(Order.id == payload["order_id"], Order.buyer_id == user_id)
            .first()
        )
        if order is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
        if order.payment_status == "paid":
            raise ServiceError(ErrorKind.CONFLICT, "ORDER_ALREADY_PAID", "Order has already been paid")
        if order.status == "cancelled":
            raise ServiceError(ErrorKind.VALIDATION, "INVALID_ORDER_STATUS", "Cannot pay for a cancelled order")

        transaction = create_transaction(
            order=order,
            user_id=user_id,
            payment_method=payment_method,
            phone_number=str(payload["phone_number"]),
        )
        transaction.provider = provider
        transaction.status = "processing"
        payment_reference = f"{provider.upper()}-{transaction.transaction_reference[-8:]}"
        transaction.provider_response = {"status": "initiated", "payment_reference": payment_reference}
        if order.payment_status == "pending":
            apply_payment_status(order, "processing")
        order.payment_method = payment_method
        return transaction, payment_reference

    transaction, payment_reference = run_in_transaction(_op)
    current_app.logger.info(
        "[payment gateway mock] initiate provider=%s reference=%s amount=%s %s",
        provider, transaction.transaction_reference, from_cents(transaction.amount_cents), transaction.currency,
    )
    return {
        "transaction": transaction.to_dict(),
        "payment": {
            "transaction_id": transaction.id,
            "provider": provider,
            "status": "initiated",
            "payment_reference": payment_reference,
        },
    }


def _find_transaction(identifier) -> PaymentTransaction | None:
    query = db.session.query(PaymentTransaction)
    if isinstance(identifier, int) or (isinstance(identifier, str) and identifier.isdigit()):
        return lock_for_update(query.filter(PaymentTransaction.id == int(identifier))).first()
    return lock_for_update(query.filter(PaymentTransaction.transaction_reference == str(identifier))).first()


def process_callback(payload: dict) -> dict:
    """
    Provider webhook.

    status='success' -> transaction completed, order paid (paid_at stamped)
    status='failed'  -> transaction failed, order payment failed
    Replayed callbacks for a completed transaction are acknowledged without changes.
    """
    require_fields(payload, ("transaction_id", "status"))
    outcome = str(payload["status"]).lower()
    if outcome not in ("success", "failed"):
        raise ServiceError(
            ErrorKind.VALIDATION, "INVALID_CALLBACK_STATUS", "status must be 'success' or 'failed'", {"field": "status"}
        )
    provider_reference = payload.get("provider_reference")

    def _op():
        transaction = _find_transaction(payload["transaction_id"])
        if transaction is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "TRANSACTION_NOT_FOUND", "Transaction not found")
        if transaction.status == "completed":
            return transaction

        order = lock_for_update(db.session.query(Order).filter(Order.id == transaction.order_id)).first()
        if outcome == "success":
            transaction.status = "completed"
            transaction.completed_at = utcnow()
            transaction.provider_transaction_id = provider_reference
            order.payment_status = "paid"
            order.paid_at = order.paid_at or utcnow()
            notification_service.notify(
                order.buyer_id, "payment_received", "Payment received",
                f"Payment for order {order.order_number} was successful.",
                resource_type="order", resource_id=order.id,
            )
        else:
            transaction.status = "failed"
            transaction.failure_reason = payload.get("reason")
            if order.payment_status != "paid":
                order.payment_status = "failed"
            notification_service.notify(
                order.buyer_id, "payment_failed", "Payment failed",
                f"Payment for order {order.order_number} failed.",
                resource_type="order", resource_id=order.id,
            )
        return transaction

    transaction = run_in_transaction(_op)
    current_app.logger.info(
        "Payment callback processed: transaction_id=%s outcome=%s", transaction.id, outcome
    )
    return transaction.to_dict()


def get_transaction(transaction_id: int, user_id: int) -> dict:
    transaction = (
        db.session.query(PaymentTransaction)
        .filter(PaymentTransaction.id == transaction_id, PaymentTransaction.user_id == user_id)
        .first()
    )
    if transaction is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "TRANSACTION_NOT_FOUND", "Transaction not found")
    return transaction.to_dict()


def list_order_transactions(order_id: int, user_id: int) -> list[dict]:
    order = db.session.query(Order).filter(Order.id == order_id, Order.buyer_id == user_id).first()
    if order is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "ORDER_NOT_FOUND", "Order not found")
    rows = (
        db.session.query(PaymentTransaction)
        .filter(PaymentTransaction.order_id == order_id)
        .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
        .all()
    )
    return [t.to_dict() for t in rows]


def user_payment_summary(user_id: int) -> dict:
    total, successful, failed, paid_cents, pending_cents = (
        db.session.query(
            func.count(PaymentTransaction.id),
            func.sum(case((PaymentTransaction.status == "completed", 1), else_=0)),
            func.sum(case((PaymentTransaction.status == "failed", 1), else_=0)),
            func.sum(case((PaymentTransaction.status == "completed", PaymentTransaction.amount_cents), else_=0)),
            func.sum(case(
                (PaymentTransaction.status.in_(("pending", "processing")), PaymentTransaction.amount_cents),
                else_=0,
            )),
        )
        .filter(PaymentTransaction.user_id == user_id)
        .one()
    )
    return {
        "total_transactions": total or 0,
        "successful": int(successful or 0),
        "failed": int(failed or 0),
        "total_paid": from_cents(int(paid_cents or 0)),
        "pending_amount": from_cents(int(pending_cents or 0)),
    }


# ---------------------------------------------------------------------------
# Saved payment methods
# ---------------------------------------------------------------------------


def _check_method_type(patch: dict) -> None:
    if "method_type" in patch and patch["method_type"] not in PAYMENT_METHOD_TYPES:
        raise ServiceError(
            ErrorKind.VALIDATION,
            "INVALID_PAYMENT_METHOD",
            f"method_type must be one of: {', '.join(PAYMENT_METHOD_TYPES)}",
            {"field": "method_type"},
        )


def _unset_defaults(user_id: int, keep_id: int | None = None) -> None:
    query = db.session.query(PaymentMethod).filter(
        PaymentMethod.user_id == user_id, PaymentMethod.is_default.is_(True)
    )
    if keep_id is not None:
        query = query.filter(PaymentMethod.id != keep_id)
    query.update({"is_default": False}, synchronize_session=False)


def list_methods(user_id: int) -> list[dict]:
    rows = (
        db.session.query(PaymentMethod)
        .filter(PaymentMethod.user_id == user_id, PaymentMethod.is_active.is_(True))
        .order_by(PaymentMethod.is_default.desc(), PaymentMethod.created_at.desc(), PaymentMethod.id.desc())
        .all()
    )
    return [m.to_dict() for m in rows]


def add_method(user_id: int, payload: dict) -> dict:
    patch = validate_payload(model=PaymentMethod, payload=payload, policy=PAYMENT_METHOD_POLICY, partial=False)
    _check_method_type(patch)

    def _op():
        if patch.get("is_default"):
            _unset_defaults(user_id)
        method = PaymentMethod(user_id=user_id, **patch)
        db.session.add(method)
        return method

    return run_in_transaction(_op).to_dict()


def _get_method(method_id: int, user_id: int) -> PaymentMethod:
    method = (
        db.session.query(PaymentMethod)
        .filter(
            PaymentMethod.id == method_id,
            PaymentMethod.user_id == user_id,
            PaymentMethod.is_active.is_(True),
        )
        .first()
    )
    if method is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "PAYMENT_METHOD_NOT_FOUND", "Payment method not found")
    return method


def update_method(method_id: int, user_id: int, payload: dict) -> dict:
    patch = validate_payload(model=PaymentMethod, payload=payload, policy=PAYMENT_METHOD_POLICY, partial=True)
    _check_method_type(patch)

    def _op():
        method = _get_method(method_id, user_id)
        if patch.get("is_default"):
            _unset_defaults(user_id, keep_id=method.id)
        for key, value in patch.items():
            setattr(method, key, value)
        return method

    return run_in_transaction(_op).to_dict()


def delete_method(method_id: int, user_id: int) -> None:
    def _op():
        method = _get_method(method_id, user_id)
        method.is_active = False
        method.is_default = False

    run_in_transaction(_op)
