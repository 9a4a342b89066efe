# Overview: Flask API routes for admin moderation; verification review, users and audit logs.

# backend/farmconnect/routes/admin.py
"""
Admin routes.

SECURITY: Every route requires an admin bearer token.
Approvals and rejections are written to the audit log and admin_approvals.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..responses import success, json_body, page_args
from ..services import admin_service, audit_service
from .system import check_database_health

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")


@admin_bp.get("/verifications/pending")
@require_auth
@require_role("admin")
def pending_verifications_route():
    page, limit = page_args()
    items, meta = admin_service.pending_verifications(page=page, limit=limit)
    return success(items, pagination=meta)


@admin_bp.post("/verifications/<int:verification_id>/approve")
@require_auth
@require_role("admin")
def approve_verification_route(verification_id: int):
    verification = admin_service.approve_verification(verification_id, g.user_id, json_body().get("notes"))
    return success(verification, message="Verification approved")


@admin_bp.post("/verifications/<int:verification_id>/reject")
@require_auth
@require_role("admin")
def reject_verification_route(verification_id: int):
    verification = admin_service.reject_verification(verification_id, g.user_id, json_body().get("reason"))
    return success(verification, message="Verification rejected")


@admin_bp.get("/users")
@require_auth
@require_role("admin")
def list_users_route():
    page, limit = page_args()
    items, meta = admin_service.list_users(user_type=request.args.get("user_type"), page=page, limit=limit)
    return success(items, pagination=meta)


@admin_bp.get("/audit-logs")
@require_auth
@require_role("admin")
def audit_logs_route():
    """Query params: user_id, action, resource_type, start_date, end_date, page, limit."""
    page, limit = page_args()
    items, meta = audit_service.list_logs(
        user_id=request.args.get("user_id", type=int),
        action=request.args.get("action"),
        resource_type=request.args.get("resource_type"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        page=page,
        limit=limit,
    )
    return success(items, pagination=meta)


@admin_bp.get("/health")
@require_auth
@require_role("admin")
def admin_health_route():
    result = check_database_health()
    return success(result, status=200 if result["status"] == "ok" else 503)
