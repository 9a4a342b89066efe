# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/farmconnect/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration
- Account lockout after repeated failed attempts (429 ACCOUNT_LOCKED)
- Stateless bearer tokens (access + refresh)
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..responses import success, json_body
from ..services import auth_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


@auth_bp.post("/register")
def register_route():
    """
    Register a farmer, buyer, delivery or warehouse account.

    Farmers start with verification_status 'unverified'; every other role
    is approved immediately. Admin accounts are created through the CLI.
    """
    user = auth_service.register(json_body())
    return success(user, message="User registered successfully", status=201)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email + password.

    Returns the user, access_token, refresh_token and whether the farmer
    still has to complete verification.
    """
    data = json_body()
    result = auth_service.login(data.get("email"), data.get("password"))
    return success(result, message="Login successful")


@auth_bp.post("/refresh")
def refresh_route():
    data = json_body()
    return success(auth_service.refresh(data.get("refresh_token")))


@auth_bp.get("/me")
@require_auth
def me_route():
    user = auth_service.get_active_user(g.user_id)
    return success(user.to_dict())


@auth_bp.get("/lockout-status")
@require_auth
@require_role("admin")
def lockout_status_route():
    """Lockout info for an email (?email=...). Admin only."""
    return success(auth_service.lockout_status(request.args.get("email")))
