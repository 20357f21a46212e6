from sqlalchemy import event
from sqlalchemy.orm import object_session

from laborhub.errors import Conflict
from laborhub.extensions import db
from laborhub.models.base import PKType, TimestampMixin, isoformat, money, utcnow


class EarningStatus:
    COMPLETED = "COMPLETED"


class Earning(TimestampMixin, db.Model):
    """Settlement ledger row. Written once on order completion, never updated or removed."""

    __tablename__ = "earnings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    order_id = db.Column(PKType, db.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, unique=True)
    job_application_id = db.Column(
        PKType, db.ForeignKey("job_applications.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    job_id = db.Column(PKType, db.ForeignKey("jobs.id", ondelete="RESTRICT"), nullable=False, index=True)
    worker_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    customer_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    earned_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    status = db.Column(db.String(16), nullable=False, default=EarningStatus.COMPLETED)
    payment_gateway_id = db.Column(db.String(120), nullable=True)

    order = db.relationship("Order", back_populates="earning")
    job = db.relationship("Job")
    worker = db.relationship("User", foreign_keys=[worker_id])
    customer = db.relationship("User", foreign_keys=[customer_id])

    __table_args__ = (
        db.Index("ix_earnings_worker_earned", "worker_id", "earned_date"),
        db.CheckConstraint("status IN ('COMPLETED')", name="ck_earning_status"),
        db.CheckConstraint("amount >= 0", name="ck_earning_amount_non_negative"),
    )

    def to_dict(self):
        review = self.order.review if self.order else None
        return {
            "id": self.id,
            "order_id": self.order_id,
            "job_application_id": self.job_application_id,
            "job_id": self.job_id,
            "job_title": self.job.title if self.job else None,
            "job_category": self.job.category.name if self.job and self.job.category else None,
            "worker_id": self.worker_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.full_name if self.customer else None,
            "amount": money(self.amount),
            "earned_date": isoformat(self.earned_date),
            "status": self.status,
            "payment_gateway_id": self.payment_gateway_id,
            "rating": review.rating if review else None,
        }


@event.listens_for(Earning, "before_update")
def _refuse_earning_update(_mapper, _connection, target):
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise Conflict(f"Earning {target.id} is immutable once settled.")


@event.listens_for(Earning, "before_delete")
def _refuse_earning_delete(_mapper, _connection, target):
    raise Conflict(f"Earning {target.id} cannot be removed.")
