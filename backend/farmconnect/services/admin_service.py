# Overview: Service-layer operations for admin moderation of farmer verifications and users.

from __future__ import annotations

from flask import current_app

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import AdminApproval, Farmer, FarmerVerification, User
from ..models.users import USER_TYPES
from ..time_utils import utcnow
from . import audit_service, notification_service
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate


def pending_verifications(*, page=None, limit=None):
    """Submitted verifications still awaiting the level-2 decision, oldest first."""
    query = (
        db.session.query(FarmerVerification)
        .filter(FarmerVerification.status == "pending", FarmerVerification.submitted_at.isnot(None))
        .order_by(FarmerVerification.submitted_at, FarmerVerification.id)
    )
    items, meta = paginate(query, page, limit)
    rows = []
    for verification in items:
        data = verification.to_dict()
        data["email"] = verification.user.email if verification.user else None
        rows.append(data)
    return rows, meta


def _pending_for_review(verification_id: int) -> FarmerVerification:
    verification = lock_for_update(
        db.session.query(FarmerVerification).filter(FarmerVerification.id == verification_id)
    ).first()
    if verification is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "VERIFICATION_NOT_FOUND", "Verification not found")
    if verification.status != "pending":
        raise ServiceError(
            ErrorKind.CONFLICT,
            "VERIFICATION_ALREADY_REVIEWED",
            f"Verification has already been {verification.status}",
            {"status": verification.status},
        )
    return verification


def approve_verification(verification_id: int, admin_id: int, notes: str | None = None) -> dict:
    def _op():
        verification = _pending_for_review(verification_id)
        now = utcnow()
        verification.status = "approved"
        verification.level_2_status = "approved"
        verification.approved_at = now
        verification.reviewed_by_admin_id = admin_id
        verification.admin_notes = notes

        farmer = db.session.get(Farmer, verification.farmer_id)
        if farmer is not None:
            farmer.is_approved = True
        user = db.session.get(User, verification.user_id)
        user.is_verified = True
        user.verification_status = "approved"

        db.session.add(AdminApproval(
            admin_id=admin_id,
            resource_type="farmer_verification",
            resource_id=verification.id,
            action="approved",
            notes=notes,
            created_at=now,
        ))
        audit_service.log_action(
            admin_id, "verification.approve",
            resource_type="farmer_verification", resource_id=verification.id,
            old_values={"status": "pending"}, new_values={"status": "approved"},
        )
        notification_service.notify(
            user.id, "verification_approved", "Verification approved",
            "Your farmer verification has been approved. You can now sell on FarmConnect.",
            resource_type="farmer_verification", resource_id=verification.id,
        )
        return verification

    verification = run_in_transaction(_op)
    current_app.logger.info("Verification %s approved by admin %s", verification_id, admin_id)
    return verification.to_dict()


def reject_verification(verification_id: int, admin_id: int, reason) -> dict:
    if not reason or not str(reason).strip():
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "Rejection reason is required", {"field": "reason"})
    reason = str(reason).strip()

    def _op():
        verification = _pending_for_review(verification_id)
        now = utcnow()
        verification.status = "rejected"
        verification.level_2_status = "rejected"
        verification.rejection_reason = reason
        verification.rejected_at = now
        verification.reviewed_by_admin_id = admin_id

        user = db.session.get(User, verification.user_id)
        user.verification_status = "rejected"

        db.session.add(AdminApproval(
            admin_id=admin_id,
            resource_type="farmer_verification",
            resource_id=verification.id,
            action="rejected",
            notes=reason,
            created_at=now,
        ))
        audit_service.log_action(
            admin_id, "verification.reject",
            resource_type="farmer_verification", resource_id=verification.id,
            old_values={"status": "pending"}, new_values={"status": "rejected", "reason": reason},
        )
        notification_service.notify(
            user.id, "verification_rejected", "Verification rejected",
            f"Your farmer verification was rejected: {reason}",
            resource_type="farmer_verification", resource_id=verification.id,
        )
        return verification

    verification = run_in_transaction(_op)
    current_app.logger.info("Verification %s rejected by admin %s", verification_id, admin_id)
    return verification.to_dict()


def list_users(*, user_type: str | None = None, page=None, limit=None):
    query = db.session.query(User).filter(User.deleted_at.is_(None))
    if user_type:
        if user_type not in USER_TYPES:
            raise ServiceError(ErrorKind.VALIDATION, "INVALID_USER_TYPE", "Invalid user type", {"field": "user_type"})
        query = query.filter(User.user_type == user_type)
    items, meta = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    return [u.to_dict() for u in items], meta
