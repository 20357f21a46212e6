from laborhub.extensions import db
from laborhub.models.base import PKType, TimestampMixin, isoformat


class Review(TimestampMixin, db.Model):
    __tablename__ = "reviews"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    order_id = db.Column(PKType, db.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, unique=True)
    reviewer_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = db.Column(db.SmallInteger, nullable=False)
    comment = db.Column(db.Text, nullable=False)
    worker_reply = db.Column(db.Text, nullable=True)
    replied_at = db.Column(db.DateTime(timezone=True), nullable=True)

    order = db.relationship("Order", back_populates="review")
    reviewer = db.relationship("User", foreign_keys=[reviewer_id])

    __table_args__ = (
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
        db.CheckConstraint(
            "(worker_reply IS NULL) = (replied_at IS NULL)",
            name="ck_review_reply_timestamp",
        ),
    )

    def to_dict(self):
        order = self.order
        return {
            "id": self.id,
            "order_id": self.order_id,
            "reviewer_id": self.reviewer_id,
            "reviewer": self.reviewer.to_summary() if self.reviewer else None,
            "worker_id": order.worker_id if order else None,
            "job_title": order.job.title if order and order.job else None,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": isoformat(self.created_at),
            "worker_reply": self.worker_reply,
            "replied_at": isoformat(self.replied_at),
        }
