from laborhub.extensions import db
from laborhub.models.base import PKType, TimestampMixin, isoformat


class Notification(TimestampMixin, db.Model):
    __tablename__ = "notifications"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    user_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(40), nullable=False, index=True)
    title = db.Column(db.String(180), nullable=False)
    message = db.Column(db.Text, nullable=False)
    related_id = db.Column(PKType, nullable=True)
    related_type = db.Column(db.String(24), nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)

    user = db.relationship("User", back_populates="notifications")

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "related_id": self.related_id,
            "related_type": self.related_type,
            "is_read": self.is_read,
            "created_at": isoformat(self.created_at),
        }
