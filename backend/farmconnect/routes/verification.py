# Overview: Flask API routes for the farmer verification intake and phone OTP.

# backend/farmconnect/routes/verification.py
"""
Farmer verification routes (farmers only).

Flow: initiate -> step/0..5 -> otp/send -> otp/verify -> submit.
The admin decision lives under /api/v1/admin/verifications.
"""
from flask import Blueprint, g

from ..decorators import require_auth, require_role
from ..errors import ErrorKind, ServiceError
from ..responses import success, json_body
from ..services import verification_service

verification_bp = Blueprint("verification", __name__, url_prefix="/api/v1/farmers/verify")


@verification_bp.post("/initiate")
@require_auth
@require_role("farmer")
def initiate_route():
    result = verification_service.initiate(g.user_id)
    return success(result, message="Verification initiated", status=201)


@verification_bp.post("/step/<step>")
@require_auth
@require_role("farmer")
def step_route(step: str):
    try:
        step_number = int(step)
    except ValueError:
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_STEP", "Step must be between 0 and 5", {"field": "step"})
    result = verification_service.submit_step(g.user_id, step_number, json_body())
    return success(result, message=f"Step {step_number} saved")


@verification_bp.post("/otp/send")
@require_auth
@require_role("farmer")
def send_otp_route():
    return success(verification_service.send_otp(g.user_id, json_body().get("phone_number")))


@verification_bp.post("/otp/verify")
@require_auth
@require_role("farmer")
def verify_otp_route():
    return success(verification_service.verify_otp(g.user_id, json_body().get("otp_code")))


@verification_bp.get("/status")
@require_auth
@require_role("farmer")
def status_route():
    return success(verification_service.status(g.user_id))


@verification_bp.post("/submit")
@require_auth
@require_role("farmer")
def submit_route():
    result = verification_service.submit(g.user_id)
    return success(result, message="Verification submitted for review")
