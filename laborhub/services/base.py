from contextlib import contextmanager

from flask import current_app

from laborhub.errors import ValidationError
from laborhub.extensions import db
from laborhub.services.notification_service import NotificationService


class LifecycleService:
    """Shared plumbing for the services that own lifecycle rows.

    Each public mutation is one unit of work on ``session``: it re-reads the
    row it guards, writes through a compare-and-set update, commits once and
    only then hands its events to the notification dispatcher.
    """

    def __init__(self, session=None, notifications=None):
        self.session = session or db.session
        self.notifications = notifications or NotificationService(self.session)

    @property
    def logger(self):
        return current_app.logger

    @contextmanager
    def unit_of_work(self):
        try:
            yield
        except Exception:
            self.session.rollback()
            raise

    def locked(self, model, row_id):
        # FOR UPDATE is a no-op on SQLite, which serializes writers anyway.
        return (
            self.session.query(model)
            .filter(model.id == row_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def compare_and_set(self, instance, guards, values):
        model = type(instance)
        updated = (
            self.session.query(model)
            .filter(model.id == instance.id, *guards)
            .update(values, synchronize_session=False)
        )
        self.session.expire(instance)
        return updated == 1

    def commit(self, events=()):
        self.session.commit()
        self.notifications.dispatch(list(events))


def coerce_id(value, label):
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer id.")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be an integer id.") from exc
    if parsed <= 0:
        raise ValidationError(f"{label} must be a positive integer id.")
    return parsed
