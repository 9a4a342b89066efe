# Overview: Flask API routes for payments; initiation, provider webhook and saved methods.

# backend/farmconnect/routes/payments.py
"""
Payment routes.

The provider webhook (/callback) is unauthenticated; when
PAYMENT_WEBHOOK_SECRET is configured the provider must echo it in the
X-Webhook-Secret header.
"""
import hmac

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..errors import ErrorKind, ServiceError
from ..responses import success, json_body
from ..services import payment_service

payments_bp = Blueprint("payments", __name__, url_prefix="/api/v1/payments")


@payments_bp.post("/initiate")
@require_auth
def initiate_route():
    """Body: order_id, payment_method, phone_number, provider (optional)."""
    result = payment_service.initiate_payment(g.user_id, json_body())
    return success(result, message="Payment initiated", status=201)


@payments_bp.post("/callback")
def callback_route():
    """Provider webhook. Body: transaction_id, status (success|failed), provider_reference, reason."""
    secret = current_app.config.get("PAYMENT_WEBHOOK_SECRET")
    if secret:
        supplied = request.headers.get("X-Webhook-Secret", "")
        if not hmac.compare_digest(supplied, secret):
            raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_SIGNATURE", "Invalid webhook signature")
    transaction = payment_service.process_callback(json_body())
    return success(transaction, message="Callback processed")


@payments_bp.get("/summary")
@require_auth
def summary_route():
    return success(payment_service.user_payment_summary(g.user_id))


@payments_bp.get("/methods")
@require_auth
def list_methods_route():
    return success(payment_service.list_methods(g.user_id))


@payments_bp.post("/methods")
@require_auth
def add_method_route():
    return success(payment_service.add_method(g.user_id, json_body()), message="Payment method added", status=201)


@payments_bp.put("/methods/<int:method_id>")
@require_auth
def update_method_route(method_id: int):
    return success(payment_service.update_method(method_id, g.user_id, json_body()), message="Payment method updated")


@payments_bp.delete("/methods/<int:method_id>")
@require_auth
def delete_method_route(method_id: int):
    payment_service.delete_method(method_id, g.user_id)
    return success(message="Payment method deleted")


@payments_bp.get("/order/<int:order_id>")
@require_auth
def order_transactions_route(order_id: int):
    return success(payment_service.list_order_transactions(order_id, g.user_id))


@payments_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    return success(payment_service.get_transaction(transaction_id, g.user_id))
