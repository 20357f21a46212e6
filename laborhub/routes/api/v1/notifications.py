from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from laborhub.services import NotificationService

api_notification_bp = Blueprint("api_notification", __name__)


@api_notification_bp.get("/me")
@login_required
def my_notifications():
    raw = (request.args.get("is_read") or "").strip().lower()
    is_read = {"true": True, "false": False}.get(raw)
    items = NotificationService().list_for_user(current_user.id, is_read=is_read)
    return jsonify({"notifications": [n.to_dict() for n in items]})


@api_notification_bp.get("/me/unread-count")
@login_required
def unread_count():
    return jsonify({"unread_count": NotificationService().unread_count(current_user.id)})


@api_notification_bp.post("/me/read")
@login_required
def mark_all_read():
    updated = NotificationService().mark_all_read(current_user.id)
    return jsonify({"ok": True, "updated": updated})


@api_notification_bp.delete("/me/read")
@login_required
def delete_read():
    deleted = NotificationService().delete_read(current_user.id)
    return jsonify({"ok": True, "deleted": deleted})


@api_notification_bp.patch("/<int:notification_id>/read")
@login_required
def mark_read(notification_id):
    notification = NotificationService().mark_read(notification_id, current_user.id)
    return jsonify({"notification": notification.to_dict()})


@api_notification_bp.delete("/<int:notification_id>")
@login_required
def delete_notification(notification_id):
    NotificationService().delete(notification_id, current_user.id)
    return jsonify({"ok": True})
