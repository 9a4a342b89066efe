# Overview: Flask API routes for in-app notifications.

from flask import Blueprint, g

from ..decorators import require_auth
from ..responses import success, page_args, bool_arg
from ..services import notification_service

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/v1/notifications")


@notifications_bp.get("")
@notifications_bp.get("/")
@require_auth
def list_route():
    page, limit = page_args()
    items, meta = notification_service.list_notifications(
        g.user_id, unread_only=bool(bool_arg("unread_only")), page=page, limit=limit
    )
    return success(items, pagination=meta)


@notifications_bp.get("/unread-count")
@require_auth
def unread_count_route():
    return success({"unread_count": notification_service.unread_count(g.user_id)})


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    return success(notification_service.mark_read(notification_id, g.user_id))


@notifications_bp.put("/read-all")
@require_auth
def mark_all_read_route():
    return success({"updated": notification_service.mark_all_read(g.user_id)})


@notifications_bp.delete("/<int:notification_id>")
@require_auth
def delete_route(notification_id: int):
    notification_service.delete_notification(notification_id, g.user_id)
    return success(message="Notification deleted")
