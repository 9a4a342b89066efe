# Overview: Request and role decorators for API routes.

from functools import wraps

from flask import request, g

from .errors import ErrorKind, ServiceError
from .services import token_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_user") and hasattr(g, "user_id")


def require_auth(f):
    """
    Require a valid bearer access token.

    Sets the following Flask g attributes:
    - g.current_user: the verified token claims
      (user_id, email, user_type, verification_status)
    - g.user_id: shortcut for g.current_user["user_id"]

    Returns 401 when the header is missing (UNAUTHORIZED) or the token is
    malformed, tampered with (INVALID_TOKEN) or expired (TOKEN_EXPIRED).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            raise ServiceError(ErrorKind.UNAUTHORIZED, "UNAUTHORIZED", "Missing or invalid authorization header")

        token = auth_header.split(" ", 1)[1].strip()
        claims = token_service.verify_token(token)

        g.current_user = claims
        g.user_id = claims["user_id"]

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Restrict a route to the given user types. Must be stacked under @require_auth.
    """
    allowed = set(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise ServiceError(ErrorKind.UNAUTHORIZED, "UNAUTHORIZED", "Authentication required")

            if g.current_user.get("user_type") not in allowed:
                raise ServiceError(
                    ErrorKind.FORBIDDEN,
                    "FORBIDDEN",
                    "Insufficient permissions",
                    {"required_roles": sorted(allowed)},
                )

            return f(*args, **kwargs)

        return decorated_function

    return decorator
