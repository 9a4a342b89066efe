# Overview: Service-layer operations for farmer verification intake and phone OTP.

"""
Farmer Verification Service

WHY: A farmer must be verified before buyers can trust the listing. The
form is filled in six independent steps (0-5), each validated and stored
immediately:

    0 identity   1 farm details   2 payout   3 documents   4 phone (OTP)   5 consent

Final submission only re-checks three headline fields and the consent
flags, then records the automated "level 1" result:
    passed  <=> id_format_valid AND otp_verified
"Level 2" is the admin review (see admin_service).

OTP RULES:
- 6-digit code, expires after OTP_TTL_SECONDS, at most OTP_MAX_ATTEMPTS tries
- one code per OTP_RESEND_COOLDOWN_SECONDS per user
- a wrong code consumes an attempt; once attempts >= max_attempts even the
  correct code is refused
- SMS delivery is mocked through the application logger
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import func

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import FarmerVerification, OtpVerification, Farmer, User
from ..models.verification import VERIFICATION_STEPS
from ..time_utils import seconds_from_now, seconds_until, utcnow
from ..validation import (
    ModelValidationPolicy, validate_payload, validate_id_format, validate_mobile_money_name,
    validate_phone_number, generate_otp, mask_phone_number,
)
from .concurrency import lock_for_update, run_in_transaction

ID_TYPES = ("ghana_card", "voter_id", "passport", "drivers_license")

STEP_POLICIES = {
    0: ModelValidationPolicy(
        writable_fields=frozenset({
            "full_name", "date_of_birth", "gender", "national_id_type", "national_id_number", "phone_number",
        }),
    ),
    1: ModelValidationPolicy(
        writable_fields=frozenset({
            "farm_name", "region", "district", "town_community", "gps_address", "farm_size", "years_of_experience",
        }),
    ),
    2: ModelValidationPolicy(
        writable_fields=frozenset({
            "mobile_money_provider", "mobile_money_number", "mobile_money_name",
            "account_holder_name", "preferred_payment_method",
        }),
    ),
    5: ModelValidationPolicy(
        writable_fields=frozenset({"confirm_ownership", "agree_to_terms", "consent_to_verification"}),
    ),
}

REQUIRED_BY_STEP = {
    0: (("full_name", "Full name required"),
        ("date_of_birth", "Date of birth required"),
        ("national_id_number", "ID number required")),
    1: (("farm_name", "Farm name required"),
        ("region", "Region required"),
        ("gps_address", "GPS address required")),
    2: (("mobile_money_name", "Mobile money name required"),
        ("mobile_money_number", "Mobile money number required"),
        ("account_holder_name", "Account holder name required")),
}

DOCUMENT_FIELDS = {
    "ghana_card_front": "ghana_card_front_url",
    "ghana_card_back": "ghana_card_back_url",
    "farm_photo_1": "farm_photo_1_url",
    "farm_photo_2": "farm_photo_2_url",
}

CONSENT_FIELDS = ("confirm_ownership", "agree_to_terms", "consent_to_verification")


def _step_error(message: str, field: str) -> ServiceError:
    return ServiceError(ErrorKind.UNPROCESSABLE, "VALIDATION_ERROR", message, {"field": field})


def _string_list(data: dict, field: str) -> list[str]:
    value = data.get(field)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise _step_error(f"{field} must be a list of strings", field)
    return value


def _current(user_id: int, *, lock: bool = False) -> FarmerVerification | None:
    query = (
        db.session.query(FarmerVerification)
        .filter(FarmerVerification.user_id == user_id)
        .order_by(FarmerVerification.created_at.desc(), FarmerVerification.id.desc())
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def _require_open(user_id: int) -> FarmerVerification:
    verification = _current(user_id, lock=True)
    if verification is None or verification.status != "pending":
        raise ServiceError(ErrorKind.NOT_FOUND, "VERIFICATION_NOT_FOUND", "Verification not found")
    if verification.submitted_at is not None:
        raise ServiceError(
            ErrorKind.CONFLICT, "VERIFICATION_SUBMITTED", "Verification has already been submitted for review"
        )
    return verification


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


def initiate(user_id: int) -> dict:
    def _op():
        user = db.session.get(User, user_id)
        if user is None or user.user_type != "farmer":
            raise ServiceError(ErrorKind.FORBIDDEN, "FORBIDDEN", "Only farmers can be verified")
        farmer = db.session.query(Farmer).filter(Farmer.user_id == user_id).first()
        if farmer is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "FARMER_NOT_FOUND", "Farmer profile not found")

        existing = _current(user_id, lock=True)
        if existing is not None and existing.status == "pending":
            raise ServiceError(
                ErrorKind.CONFLICT,
                "VERIFICATION_IN_PROGRESS",
                "A verification is already in progress",
                {"verification_id": existing.id},
            )
        if existing is not None and existing.status == "approved":
            raise ServiceError(ErrorKind.CONFLICT, "ALREADY_VERIFIED", "Farmer is already verified")

        verification = FarmerVerification(
            user_id=user_id,
            farmer_id=farmer.id,
            current_step=0,
            status="pending",
        )
        db.session.add(verification)
        return verification

    verification = run_in_transaction(_op)
    current_app.logger.info("Verification initiated: user_id=%s verification_id=%s", user_id, verification.id)
    return {
        "verification_id": verification.id,
        "current_step": verification.current_step,
        "status": verification.status,
    }


def _apply_step(verification: FarmerVerification, step: int, data: dict) -> None:
    for field, message in REQUIRED_BY_STEP.get(step, ()):
        if data.get(field) in (None, ""):
            raise _step_error(message, field)

    if step == 0:
        id_type = data.get("national_id_type") or "ghana_card"
        if id_type not in ID_TYPES:
            raise _step_error("Invalid ID type", "national_id_type")
        if not validate_id_format(data["national_id_number"], id_type):
            raise _step_error("Invalid ID format", "national_id_number")
        if data.get("phone_number") and not validate_phone_number(data["phone_number"]):
            raise _step_error("Invalid phone number", "phone_number")

    if step in STEP_POLICIES:
        patch = validate_payload(model=FarmerVerification, payload=data, policy=STEP_POLICIES[step], partial=True)
        for key, value in patch.items():
            setattr(verification, key, value)

    if step == 0:
        verification.national_id_type = data.get("national_id_type") or "ghana_card"
        verification.id_format_valid = True
    elif step == 1:
        verification.farming_types = _string_list(data, "farming_types")
        verification.produce_categories = _string_list(data, "produce_categories")
    elif step == 2:
        if not validate_phone_number(str(data["mobile_money_number"])):
            raise _step_error("Invalid mobile money number", "mobile_money_number")
        verification.mobile_money_name_matched = validate_mobile_money_name(
            verification.mobile_money_name, verification.full_name
        )
    elif step == 3:
        documents = data.get("documents") or {}
        if not isinstance(documents, dict):
            raise _step_error("documents must be an object", "documents")
        for key, column in DOCUMENT_FIELDS.items():
            if documents.get(key):
                setattr(verification, column, str(documents[key]))
    # step 4 (phone) is completed through the OTP endpoints


def submit_step(user_id: int, step: int, data: dict) -> dict:
    if not 0 <= step < VERIFICATION_STEPS:
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_STEP", "Step must be between 0 and 5", {"field": "step"})

    def _op():
        verification = _require_open(user_id)
        _apply_step(verification, step, data or {})
        verification.current_step = max(verification.current_step or 0, step + 1)
        return verification

    verification = run_in_transaction(_op)
    return {
        "verification_id": verification.id,
        "current_step": verification.current_step,
        "status": verification.status,
    }


def submit(user_id: int) -> dict:
    """Final submission: presence + consent checks, then the level-1 automated result."""
    def _op():
        verification = _require_open(user_id)
        if not verification.full_name or not verification.farm_name or not verification.mobile_money_name:
            raise ServiceError(ErrorKind.VALIDATION, "INCOMPLETE_VERIFICATION", "Incomplete verification form")
        if not all(getattr(verification, name) for name in CONSENT_FIELDS):
            raise ServiceError(ErrorKind.VALIDATION, "TERMS_NOT_ACCEPTED", "Must agree to all terms")

        now = utcnow()
        passed = bool(verification.id_format_valid and verification.otp_verified)
        verification.level_1_status = "passed" if passed else "failed"
        verification.level_1_completed_at = now
        verification.submitted_at = now
        verification.status = "pending"

        user = db.session.get(User, user_id)
        user.verification_status = "pending"
        return verification

    verification = run_in_transaction(_op)
    current_app.logger.info(
        "Verification submitted: verification_id=%s level_1=%s", verification.id, verification.level_1_status
    )
    return {
        "verification_id": verification.id,
        "status": verification.status,
        "level_1_status": verification.level_1_status,
        "submitted_at": verification.to_dict()["submitted_at"],
    }


def status(user_id: int) -> dict:
    verification = _current(user_id)
    user = db.session.get(User, user_id)
    if verification is None:
        return {
            "status": "not_started",
            "verification_status": user.verification_status if user else None,
            "current_step": 0,
        }
    data = verification.to_dict()
    data["verification_status"] = user.verification_status if user else None
    return data


# ---------------------------------------------------------------------------
# OTP
# ---------------------------------------------------------------------------


def send_otp(user_id: int, phone_number) -> dict:
    if not validate_phone_number(phone_number):
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_PHONE", "Invalid phone number", {"field": "phone_number"})
    config = current_app.config
    now = utcnow()

    def _op():
        cooldown = timedelta(seconds=config["OTP_RESEND_COOLDOWN_SECONDS"])
        cooldown_start = now - cooldown
        last_sent = (
            db.session.query(func.max(OtpVerification.created_at))
            .filter(OtpVerification.user_id == user_id, OtpVerification.created_at > cooldown_start)
            .scalar()
        )
        if last_sent is not None:
            raise ServiceError(
                ErrorKind.RATE_LIMITED,
                "OTP_RATE_LIMITED",
                "Please wait before requesting another OTP",
                {"retry_after_seconds": seconds_until(last_sent + cooldown, now)},
            )
        otp = OtpVerification(
            user_id=user_id,
            phone_number=phone_number.strip(),
            otp_code=generate_otp(config["OTP_LENGTH"]),
            attempts=0,
            max_attempts=config["OTP_MAX_ATTEMPTS"],
            expires_at=seconds_from_now(config["OTP_TTL_SECONDS"]),
            created_at=now,
        )
        db.session.add(otp)

        verification = _current(user_id, lock=True)
        if verification is not None and verification.status == "pending" and not verification.phone_number:
            verification.phone_number = otp.phone_number
        return otp

    otp = run_in_transaction(_op)
    # SMS gateway is mocked
    current_app.logger.info("[sms mock] OTP for %s: %s", mask_phone_number(otp.phone_number), otp.otp_code)

    result = {
        "message": f"OTP sent to {mask_phone_number(otp.phone_number)}",
        "expires_in": config["OTP_TTL_SECONDS"],
    }
    if current_app.testing or current_app.debug:
        result["demo_otp"] = otp.otp_code
    return result


def verify_otp(user_id: int, otp_code) -> dict:
    if not otp_code:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "otp_code is required", {"field": "otp_code"})
    code = str(otp_code).strip()

    otp = lock_for_update(
        db.session.query(OtpVerification)
        .filter(OtpVerification.user_id == user_id, OtpVerification.is_verified.is_(False))
        .order_by(OtpVerification.created_at.desc(), OtpVerification.id.desc())
    ).first()
    if otp is None:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_OTP", "Invalid OTP code")

    now = utcnow()
    if now > otp.expires_at:
        raise ServiceError(ErrorKind.GONE, "OTP_EXPIRED", "OTP expired")
    if otp.attempts >= otp.max_attempts:
        raise ServiceError(ErrorKind.RATE_LIMITED, "OTP_TOO_MANY_ATTEMPTS", "Too many OTP attempts")

    if otp.otp_code != code:
        otp.attempts += 1
        remaining = max(0, otp.max_attempts - otp.attempts)
        db.session.commit()
        raise ServiceError(
            ErrorKind.UNAUTHORIZED, "INVALID_OTP", "Invalid OTP code", {"attempts_remaining": remaining}
        )

    otp.is_verified = True
    otp.verified_at = now

    verification = _current(user_id, lock=True)
    if verification is not None and verification.status == "pending":
        verification.otp_verified = True
        verification.otp_verified_at = now
        verification.phone_number = otp.phone_number
        verification.current_step = max(verification.current_step or 0, 5)

    user = db.session.get(User, user_id)
    if user is not None:
        user.phone_verified = True
    db.session.commit()
    return {"message": "OTP verified successfully", "phone_verified": True}


def cleanup_otps(older_than_hours: int = 24) -> int:
    """Delete consumed or expired OTP rows created before the cutoff. Returns rows deleted."""
    cutoff = utcnow() - timedelta(hours=older_than_hours)
    deleted = (
        db.session.query(OtpVerification)
        .filter(
            OtpVerification.created_at < cutoff,
            (OtpVerification.is_verified.is_(True)) | (OtpVerification.expires_at < utcnow()),
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
