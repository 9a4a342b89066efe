"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts.
After too many consecutive failures the account is temporarily locked.

SECURITY FEATURES:
- Tracks consecutive failures on the user row (login_attempts)
- Lockout after MAX_LOGIN_ATTEMPTS failures; locked_until = now + LOCKOUT_MINUTES
- While locked, every attempt fails regardless of the password
- Clears the failure count on successful login
"""

from datetime import timedelta

from flask import current_app

from ..models import User
from ..time_utils import seconds_until, utcnow, to_utc_z


# Defaults; overridable through app config
MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)


def _max_attempts() -> int:
    return current_app.config.get("MAX_LOGIN_ATTEMPTS", MAX_FAILED_ATTEMPTS)


def _lockout_duration() -> timedelta:
    minutes = current_app.config.get("LOCKOUT_MINUTES")
    return timedelta(minutes=minutes) if minutes else LOCKOUT_DURATION


def is_account_locked(user: User) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    if user.locked_until is None:
        return False, None
    remaining = seconds_until(user.locked_until)
    if remaining > 0:
        return True, remaining
    return False, None


def record_failed_attempt(user: User) -> bool:
    """
    Count a failed password check. Caller commits.

    Returns True when this failure locked the account.
    """
    # An expired lock starts a fresh window
    if user.locked_until is not None and user.locked_until <= utcnow():
        user.locked_until = None
        user.login_attempts = 0

    user.login_attempts = (user.login_attempts or 0) + 1
    if user.login_attempts >= _max_attempts():
        user.locked_until = utcnow() + _lockout_duration()
        current_app.logger.warning("Account locked after %s failed logins: user_id=%s", user.login_attempts, user.id)
        return True
    return False


def record_successful_login(user: User) -> None:
    user.login_attempts = 0
    user.locked_until = None
    user.last_login = utcnow()


def get_lockout_status(user: User | None) -> dict:
    """Lockout information for display and admin tooling."""
    if user is None:
        return {"locked": False, "failed_attempts": 0, "max_attempts": _max_attempts(), "locked_until": None}
    locked, seconds_remaining = is_account_locked(user)
    return {
        "locked": locked,
        "failed_attempts": user.login_attempts or 0,
        "max_attempts": _max_attempts(),
        "seconds_remaining": seconds_remaining,
        "locked_until": to_utc_z(user.locked_until) if locked else None,
    }
