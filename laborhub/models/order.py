from laborhub.extensions import db
from laborhub.models.base import PKType, TimestampMixin, isoformat


class OrderStatus:
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    TERMINAL = {COMPLETED, CANCELLED}


class Order(TimestampMixin, db.Model):
    __tablename__ = "orders"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    job_application_id = db.Column(
        PKType,
        db.ForeignKey("job_applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    job_id = db.Column(PKType, db.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING, index=True)

    accepted_date = db.Column(db.DateTime(timezone=True), nullable=True)
    started_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_date = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_date = db.Column(db.DateTime(timezone=True), nullable=True)

    job_application = db.relationship("JobApplication", back_populates="order")
    job = db.relationship("Job")
    worker = db.relationship("User", foreign_keys=[worker_id])
    earning = db.relationship("Earning", back_populates="order", uselist=False)
    review = db.relationship("Review", back_populates="order", uselist=False)

    __table_args__ = (
        db.Index("ix_orders_worker_status", "worker_id", "status"),
        db.CheckConstraint(
            "status IN ('PENDING', 'ACCEPTED', 'COMPLETED', 'CANCELLED')",
            name="ck_order_status",
        ),
        db.CheckConstraint(
            "completed_date IS NULL OR started_date IS NOT NULL",
            name="ck_order_completed_after_started",
        ),
    )

    @property
    def customer_id(self):
        return self.job.customer_id

    def is_party(self, user_id):
        return user_id in {self.worker_id, self.customer_id}

    def to_dict(self, include_review=False):
        data = {
            "id": self.id,
            "job_application_id": self.job_application_id,
            "job_id": self.job_id,
            "worker_id": self.worker_id,
            "customer_id": self.customer_id,
            "status": self.status,
            "accepted_date": isoformat(self.accepted_date),
            "started_date": isoformat(self.started_date),
            "completed_date": isoformat(self.completed_date),
            "cancelled_date": isoformat(self.cancelled_date),
            "job": self.job.to_summary() if self.job else None,
            "worker": self.worker.to_summary() if self.worker else None,
        }
        if include_review:
            data["review"] = self.review.to_dict() if self.review else None
        return data
