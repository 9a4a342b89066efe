from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z

PAYMENT_METHOD_TYPES = ("mobile_money", "card", "bank_transfer", "cash_on_delivery")


class PaymentTransaction(db.Model):
    """
    One attempt to pay for an order through a provider.

    WHY: The order's payment_status is the buyer-facing summary; the
    transaction keeps the provider reference and the gateway payload.
    """
    __tablename__ = "payment_transactions"
    __table_args__ = (
        db.UniqueConstraint("transaction_reference", name="uq_payment_transactions_reference"),
        db.Index("ix_payment_transactions_order_id", "order_id"),
        db.Index("ix_payment_transactions_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    transaction_reference = db.Column(db.String(64), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="GHS")
    payment_method = db.Column(db.String(50), nullable=False)
    provider = db.Column(db.String(50), nullable=True)
    provider_transaction_id = db.Column(db.String(255), nullable=True)
    phone_number = db.Column(db.String(20), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="pending")
    failure_reason = db.Column(db.Text, nullable=True)
    provider_response = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    order = db.relationship("Order", backref=db.backref("payment_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "transaction_reference": self.transaction_reference,
            "amount": from_cents(self.amount_cents),
            "currency": self.currency,
            "payment_method": self.payment_method,
            "provider": self.provider,
            "provider_transaction_id": self.provider_transaction_id,
            "status": self.status,
            "failure_reason": self.failure_reason,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }


class PaymentMethod(db.Model):
    """Saved payout/pay-in method. At most one active default per user."""
    __tablename__ = "payment_methods"
    __table_args__ = (
        db.Index("ix_payment_methods_user_active", "user_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    method_type = db.Column(db.String(30), nullable=False)
    provider = db.Column(db.String(50), nullable=True)
    account_name = db.Column(db.String(200), nullable=True)
    account_number = db.Column(db.String(50), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        masked = self.account_number
        if masked and len(masked) > 4:
            masked = "*" * (len(masked) - 4) + masked[-4:]
        return {
            "id": self.id,
            "method_type": self.method_type,
            "provider": self.provider,
            "account_name": self.account_name,
            "account_number": masked,
            "is_default": self.is_default,
            "created_at": to_utc_z(self.created_at),
        }
