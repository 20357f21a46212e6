from laborhub.extensions import db
from laborhub.models.base import PKType, TimestampMixin, isoformat, utcnow


class ApplicationStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"

    DECISIONS = {APPROVED, REJECTED}


class JobApplication(TimestampMixin, db.Model):
    __tablename__ = "job_applications"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    job_id = db.Column(PKType, db.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    applied_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    status = db.Column(db.String(16), nullable=False, default=ApplicationStatus.PENDING, index=True)

    job = db.relationship("Job", back_populates="applications")
    worker = db.relationship("User", back_populates="applications")
    order = db.relationship("Order", back_populates="job_application", uselist=False)

    __table_args__ = (
        # One live application per worker and job; withdrawn rows are history.
        db.Index(
            "uq_job_applications_worker_job_active",
            "worker_id",
            "job_id",
            unique=True,
            sqlite_where=db.text("status != 'WITHDRAWN'"),
            postgresql_where=db.text("status != 'WITHDRAWN'"),
        ),
        db.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'WITHDRAWN')",
            name="ck_job_application_status",
        ),
    )

    def to_dict(self, include_job=True, include_worker=True):
        data = {
            "id": self.id,
            "job_id": self.job_id,
            "worker_id": self.worker_id,
            "applied_date": isoformat(self.applied_date),
            "status": self.status,
        }
        if include_job and self.job:
            data["job"] = self.job.to_summary()
        if include_worker and self.worker:
            data["worker"] = self.worker.to_summary()
        return data
