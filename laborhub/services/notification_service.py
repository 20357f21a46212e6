from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from laborhub.errors import NotFound
from laborhub.extensions import db
from laborhub.models import Notification


class NotificationService:
    def __init__(self, session=None):
        self.session = session or db.session

    def push(self, user_id, type, title, message, related_id=None, related_type=None):
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
            related_type=related_type,
        )
        self.session.add(notification)
        self.session.flush()
        return notification

    def dispatch(self, events):
        """Persist already-committed lifecycle events. Failures are logged, never raised."""
        if not events:
            return []
        try:
            rows = [
                self.push(
                    user_id=event.user_id,
                    type=event.type,
                    title=event.title,
                    message=event.message,
                    related_id=event.related_id,
                    related_type=event.related_type,
                )
                for event in events
            ]
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.warning("Dropped %d notification(s): %s", len(events), exc)
            return []
        for event in events:
            current_app.logger.debug("Notification %s queued for user %s", event.type, event.user_id)
        return rows

    def _owned(self, notification_id, user_id):
        notification = (
            self.session.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
        )
        if not notification:
            raise NotFound("Notification not found.")
        return notification

    def list_for_user(self, user_id, is_read=None, limit=50):
        query = self.session.query(Notification).filter_by(user_id=user_id)
        if is_read is not None:
            query = query.filter_by(is_read=is_read)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    def unread_count(self, user_id):
        return self.session.query(Notification).filter_by(user_id=user_id, is_read=False).count()

    def mark_read(self, notification_id, user_id):
        notification = self._owned(notification_id, user_id)
        notification.is_read = True
        self.session.commit()
        return notification

    def mark_all_read(self, user_id):
        updated = (
            self.session.query(Notification)
            .filter_by(user_id=user_id, is_read=False)
            .update({"is_read": True}, synchronize_session=False)
        )
        self.session.commit()
        return updated

    def delete(self, notification_id, user_id):
        notification = self._owned(notification_id, user_id)
        self.session.delete(notification)
        self.session.commit()

    def delete_read(self, user_id):
        deleted = (
            self.session.query(Notification)
            .filter_by(user_id=user_id, is_read=True)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted
