# Overview: Service-layer operations for in-app notifications.

from __future__ import annotations

from ..errors import ErrorKind, ServiceError
from ..extensions import db
from ..models import Notification
from ..time_utils import utcnow
from .pagination import paginate


def notify(
    user_id: int,
    notification_type: str,
    title: str,
    message: str | None = None,
    *,
    resource_type: str | None = None,
    resource_id: int | None = None,
) -> Notification:
    """Queue a notification in the current unit of work (caller commits)."""
    if not notification_type or not title:
        raise ServiceError(ErrorKind.VALIDATION, "MISSING_FIELDS", "Notification type and title are required")
    notification = Notification(
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        resource_type=resource_type,
        resource_id=resource_id,
        created_at=utcnow(),
    )
    db.session.add(notification)
    return notification


def list_notifications(user_id: int, *, unread_only: bool = False, page=None, limit=None):
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    items, meta = paginate(query.order_by(Notification.created_at.desc(), Notification.id.desc()), page, limit)
    return [n.to_dict() for n in items], meta


def unread_count(user_id: int) -> int:
    return (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def _get_owned(notification_id: int, user_id: int) -> Notification:
    notification = (
        db.session.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        raise ServiceError(ErrorKind.NOT_FOUND, "NOTIFICATION_NOT_FOUND", "Notification not found")
    return notification


def mark_read(notification_id: int, user_id: int) -> dict:
    notification = _get_owned(notification_id, user_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.session.commit()
    return notification.to_dict()


def mark_all_read(user_id: int) -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(notification_id: int, user_id: int) -> None:
    notification = _get_owned(notification_id, user_id)
    db.session.delete(notification)
    db.session.commit()
