# backend/farmconnect/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def build_engine_options(database_uri: str) -> dict:
    """
    Engine options shared by every environment.

    pool_timeout bounds how long a request waits for a pooled connection.
    statement_timeout is only understood by PostgreSQL.
    """
    options: dict = {"pool_pre_ping": True}
    if database_uri.startswith("sqlite"):
        return options

    options["pool_timeout"] = _env_int("DB_POOL_TIMEOUT", 10)
    statement_timeout_ms = _env_int("DB_STATEMENT_TIMEOUT_MS", 15000)
    if database_uri.startswith("postgresql"):
        options["connect_args"] = {"options": f"-c statement_timeout={statement_timeout_ms}"}
    return options


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///farmconnect.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = build_engine_options(SQLALCHEMY_DATABASE_URI)

    # bcrypt cost factor
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Token issuer
    JWT_SECRET = os.environ.get("JWT_SECRET", SECRET_KEY)
    JWT_ALGORITHM = "HS256"
    JWT_ISSUER = "farmconnect"
    JWT_ACCESS_EXPIRES_MINUTES = _env_int("JWT_ACCESS_EXPIRES_MINUTES", 7 * 24 * 60)
    JWT_REFRESH_EXPIRES_MINUTES = _env_int("JWT_REFRESH_EXPIRES_MINUTES", 30 * 24 * 60)

    # Login throttling
    MAX_LOGIN_ATTEMPTS = _env_int("MAX_LOGIN_ATTEMPTS", 5)
    LOCKOUT_MINUTES = _env_int("LOCKOUT_MINUTES", 15)

    # OTP
    OTP_LENGTH = 6
    OTP_TTL_SECONDS = _env_int("OTP_TTL_SECONDS", 600)
    OTP_MAX_ATTEMPTS = _env_int("OTP_MAX_ATTEMPTS", 5)
    OTP_RESEND_COOLDOWN_SECONDS = _env_int("OTP_RESEND_COOLDOWN_SECONDS", 60)

    # Orders (GHS 5.00 flat delivery fee, stored in pesewas)
    CURRENCY = "GHS"
    DELIVERY_FEE_CENTS = _env_int("DELIVERY_FEE_CENTS", 500)
    STRICT_ORDER_TRANSITIONS = _env_bool("STRICT_ORDER_TRANSITIONS", False)

    # Payment provider webhook; callbacks must echo it in X-Webhook-Secret when set
    PAYMENT_WEBHOOK_SECRET = os.environ.get("PAYMENT_WEBHOOK_SECRET")

    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
