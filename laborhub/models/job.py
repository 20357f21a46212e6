from laborhub.extensions import db
from laborhub.models.base import PKType, TimestampMixin, money


class Category(TimestampMixin, db.Model):
    __tablename__ = "categories"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False, unique=True)

    jobs = db.relationship("Job", back_populates="category", lazy="dynamic")


class Job(TimestampMixin, db.Model):
    """A posted task. Owned and edited outside the lifecycle engine; read here for owner and rate."""

    __tablename__ = "jobs"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    customer_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = db.Column(PKType, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    title = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(200), nullable=True)
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=False)

    customer = db.relationship("User", back_populates="jobs")
    category = db.relationship("Category", back_populates="jobs")
    applications = db.relationship("JobApplication", back_populates="job", lazy="dynamic")

    __table_args__ = (db.CheckConstraint("hourly_rate >= 0", name="ck_job_hourly_rate_non_negative"),)

    def to_summary(self):
        return {
            "id": self.id,
            "title": self.title,
            "location": self.location,
            "hourly_rate": money(self.hourly_rate),
            "category": self.category.name if self.category else None,
            "customer_id": self.customer_id,
        }
