# Overview: Typed service errors and the uniform JSON error envelope.

"""
Error taxonomy for the API.

WHY: Services raise ServiceError with a closed ErrorKind; the HTTP status is
derived from the kind, never from the message text. Routes therefore do not
need per-exception try/except blocks: the app-level handlers registered in
register_error_handlers() render every failure as

    {"success": false, "error": {"code", "message", "details", "timestamp"}}
"""

from __future__ import annotations

import enum
from typing import Any

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .extensions import db
from .time_utils import to_utc_z, utcnow


class ErrorKind(enum.Enum):
    VALIDATION = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    GONE = 410
    UNPROCESSABLE = 422
    RATE_LIMITED = 429
    INTERNAL = 500

    @property
    def status(self) -> int:
        return self.value


class ServiceError(Exception):
    """Business-rule failure raised by the service layer."""

    def __init__(self, kind: ErrorKind, code: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.message = message
        self.details = details

    @property
    def status(self) -> int:
        return self.kind.status

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.name}, {self.code!r}, {self.message!r})"


def error_body(code: str, message: str, details: Any = None) -> dict:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "timestamp": to_utc_z(utcnow()),
        },
    }


_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
}


def register_error_handlers(app) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        db.session.rollback()
        if exc.status >= 500:
            current_app.logger.error("Service error %s: %s", exc.code, exc.message)
        return jsonify(error_body(exc.code, exc.message, exc.details)), exc.status

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        db.session.rollback()
        current_app.logger.warning("Integrity error: %s", exc.orig)
        return jsonify(error_body("DUPLICATE_RESOURCE", "Resource already exists")), 409

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        code = _HTTP_CODES.get(exc.code or 500, "HTTP_ERROR")
        message = "Route not found" if exc.code == 404 else exc.description
        return jsonify(error_body(code, message)), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        message = str(exc) if app.debug else "Internal server error"
        return jsonify(error_body("INTERNAL_SERVER_ERROR", message)), 500
