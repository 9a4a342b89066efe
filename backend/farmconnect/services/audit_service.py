# Overview: Service-layer operations for the audit trail of privileged actions.

from __future__ import annotations

from flask import has_request_context, request

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import AuditLog
from ..time_utils import utcnow, parse_iso_datetime
from .pagination import paginate


def log_action(
    user_id: int | None,
    action: str,
    *,
    resource_type: str | None = None,
    resource_id: int | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog:
    """Add an audit row to the current unit of work (caller commits)."""
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:500] or None

    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        old_values=old_values,
        new_values=new_values,
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=utcnow(),
    )
    db.session.add(entry)
    return entry


def list_logs(
    *,
    user_id: int | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page=None,
    limit=None,
):
    query = db.session.query(AuditLog)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    try:
        start = parse_iso_datetime(start_date)
        end = parse_iso_datetime(end_date)
    except ValueError:
        raise ServiceError(ErrorKind.VALIDATION, "INVALID_DATE", "Dates must be ISO-8601")
    if start:
        query = query.filter(AuditLog.created_at >= start)
    if end:
        query = query.filter(AuditLog.created_at <= end)

    items, meta = paginate(query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()), page, limit)
    return [entry.to_dict() for entry in items], meta
