# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for password hashing and
JWT bearer tokens for stateless request authentication.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with lower, upper and digit
- Account lockout handled by login_throttle_service
- Farmers start 'unverified' and must complete verification to sell
"""

import bcrypt
from flask import current_app

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import User, Farmer
from ..validation import password_strength, validate_email, validate_password, require_fields
from . import login_throttle_service, token_service
from .concurrency import run_in_transaction

SELF_REGISTER_TYPES = ("farmer", "buyer", "delivery", "warehouse")
REGISTER_FIELDS = ("email", "password", "first_name", "last_name", "user_type")


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def get_active_user(user_id: int) -> User:
    user = db.session.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if user is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "USER_NOT_FOUND", "User not found")
    return user


def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    user_type: str,
    phone_number: str | None = None,
) -> User:
    """
    Create a user (caller commits).

    Farmers start unverified with a placeholder farm profile; every other
    role is approved on creation.
    """
    email = _normalize_email(email)
    if not validate_email(email):
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_EMAIL", "Invalid email format", {"field": "email"})
    if not validate_password(password):
        raise ServiceError(
            ErrorKind.UNPROCESSABLE,
            "WEAK_PASSWORD",
            "Password must be at least 8 characters with uppercase, lowercase, and number",
            {"field": "password", "strength": password_strength(password)},
        )

    existing = db.session.query(User.id).filter(User.email == email).first()
    if existing:
        raise ServiceError(ErrorKind.CONFLICT, "DUPLICATE_EMAIL", "Email already registered", {"field": "email"})

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone_number=phone_number,
        user_type=user_type,
        verification_status="unverified" if user_type == "farmer" else "approved",
        is_verified=user_type != "farmer",
    )
    db.session.add(user)
    db.session.flush()

    if user_type == "farmer":
        db.session.add(Farmer(user_id=user.id, farm_name="Pending Setup"))
        db.session.flush()

    return user


def register(payload: dict) -> dict:
    require_fields(payload, REGISTER_FIELDS)
    user_type = payload["user_type"]
    if user_type not in SELF_REGISTER_TYPES:
        raise ServiceError(
            ErrorKind.VALIDATION,
            "INVALID_USER_TYPE",
            f"user_type must be one of: {', '.join(SELF_REGISTER_TYPES)}",
            {"field": "user_type"},
        )

    def _op():
        return create_user(
            email=str(payload["email"]),
            password=str(payload["password"]),
            first_name=str(payload["first_name"]),
            last_name=str(payload["last_name"]),
            user_type=user_type,
            phone_number=payload.get("phone_number"),
        )

    user = run_in_transaction(_op)
    current_app.logger.info("User registered: user_id=%s user_type=%s", user.id, user.user_type)
    return user.to_dict()


def login(email: str | None, password: str | None) -> dict:
    """
    Authenticate by email/password.

    Locked accounts fail with ACCOUNT_LOCKED even when the password is
    correct; wrong passwords count towards the lockout.
    """
    if not email or not password:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "Email and password are required")

    user = (
        db.session.query(User)
        .filter(User.email == _normalize_email(str(email)), User.deleted_at.is_(None))
        .first()
    )
    if user is None:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_CREDENTIALS", "Invalid email or password")

    locked, seconds_remaining = login_throttle_service.is_account_locked(user)
    if locked:
        raise ServiceError(
            ErrorKind.RATE_LIMITED,
            "ACCOUNT_LOCKED",
            "Account locked due to too many failed login attempts. Try again later.",
            {"retry_after_seconds": seconds_remaining},
        )

    if not verify_password(str(password), user.password_hash):
        login_throttle_service.record_failed_attempt(user)
        db.session.commit()
        raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_CREDENTIALS", "Invalid email or password")

    if not user.is_active:
        raise ServiceError(ErrorKind.FORBIDDEN, "ACCOUNT_DISABLED", "Account is disabled")

    login_throttle_service.record_successful_login(user)
    db.session.commit()

    return {
        "user": user.to_dict(),
        "access_token": token_service.issue_access_token(user),
        "refresh_token": token_service.issue_refresh_token(user),
        "requires_verification": user.user_type == "farmer" and user.verification_status != "approved",
    }


def refresh(refresh_token: str | None) -> dict:
    if not refresh_token:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "refresh_token is required")
    claims = token_service.verify_token(refresh_token, expected_type="refresh")
    try:
        user = get_active_user(claims["user_id"])
    except ServiceError:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_TOKEN", "Invalid token")
    if not user.is_active:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_TOKEN", "Invalid token")
    return {"access_token": token_service.issue_access_token(user)}


def lockout_status(email: str | None) -> dict:
    if not email:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "email is required")
    user = db.session.query(User).filter(User.email == _normalize_email(email)).first()
    return login_throttle_service.get_lockout_status(user)
