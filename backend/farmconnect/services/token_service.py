# Overview: Service-layer operations for signed bearer tokens (JWT, HS256).

"""
Token issuer.

Access tokens carry the identity claims used for role checks so that
protected routes do not need a database round trip:
    user_id, email, user_type, verification_status, type="access"
Refresh tokens carry only user_id and type="refresh".
"""

from __future__ import annotations

from datetime import timedelta

import jwt
from flask import current_app

from ..errors import ErrorKind, ServiceError
from ..time_utils import utcnow


def _encode(payload: dict, minutes: int) -> str:
    now = utcnow()
    claims = dict(payload)
    claims.update(
        {
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
            "iss": current_app.config["JWT_ISSUER"],
        }
    )
    return jwt.encode(claims, current_app.config["JWT_SECRET"], algorithm=current_app.config["JWT_ALGORITHM"])


def issue_access_token(user) -> str:
    return _encode(
        {
            "user_id": user.id,
            "email": user.email,
            "user_type": user.user_type,
            "verification_status": user.verification_status,
            "type": "access",
        },
        current_app.config["JWT_ACCESS_EXPIRES_MINUTES"],
    )


def issue_refresh_token(user) -> str:
    return _encode(
        {"user_id": user.id, "type": "refresh"},
        current_app.config["JWT_REFRESH_EXPIRES_MINUTES"],
    )


def verify_token(token: str, *, expected_type: str = "access") -> dict:
    """
    Decode and verify a token.

    Raises ServiceError(UNAUTHORIZED) with code TOKEN_EXPIRED or INVALID_TOKEN.
    """
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            issuer=current_app.config["JWT_ISSUER"],
            options={"require": ["exp", "iat", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "TOKEN_EXPIRED", "Token has expired")
    except jwt.InvalidTokenError:
        raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_TOKEN", "Invalid token")

    if claims.get("type") != expected_type or not isinstance(claims.get("user_id"), int):
        raise ServiceError(ErrorKind.UNAUTHORIZED, "INVALID_TOKEN", "Invalid token")
    return claims
