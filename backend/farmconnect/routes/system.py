# backend/farmconnect/routes/system.py
"""
System health endpoints.

/health answers without touching the database so load balancers can probe
the process; /health/db runs a trivial query and reports 503 when the
connection pool cannot reach the database.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Run SELECT 1 and report latency."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "ok", "database": "connected", "latency_ms": round(elapsed_ms, 2)}
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "error",
            "database": "disconnected",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    return {"status": "ok", "timestamp": to_utc_z(utcnow())}


@system_bp.get("/health/db")
def health_db():
    result = check_database_health()
    result["timestamp"] = to_utc_z(utcnow())
    return result, 200 if result["status"] == "ok" else 503
