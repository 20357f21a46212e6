from flask_login import UserMixin

from laborhub.extensions import db
from laborhub.models.base import PKType, TimestampMixin


class User(UserMixin, TimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    role = db.Column(db.String(24), nullable=False, index=True)
    is_active_user = db.Column(db.Boolean, nullable=False, default=True)

    jobs = db.relationship("Job", back_populates="customer", lazy="dynamic")
    applications = db.relationship("JobApplication", back_populates="worker", lazy="dynamic")
    notifications = db.relationship("Notification", back_populates="user", lazy="dynamic")

    def to_summary(self):
        return {"id": self.id, "full_name": self.full_name, "email": self.email}
