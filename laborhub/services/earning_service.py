import calendar
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from flask import current_app

from laborhub.errors import InvalidStateTransition, NotFound, ValidationError
from laborhub.extensions import db
from laborhub.models import Earning, EarningStatus, Order, OrderStatus
from laborhub.models.base import utcnow
from laborhub.services.events import EventType, LifecycleEvent

CENT = Decimal("0.01")


def _as_utc(value):
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EarningService:
    """Settlement ledger. ``settle`` is the only writer and never commits on its own."""

    def __init__(self, session=None):
        self.session = session or db.session

    def settle(self, order_id, events=None):
        order = self.session.get(Order, order_id)
        if not order:
            raise NotFound("Order not found.")
        if order.status != OrderStatus.COMPLETED:
            raise InvalidStateTransition(
                "Earnings are only settled for completed orders.", current_state=order.status
            )

        existing = self.session.query(Earning).filter_by(order_id=order.id).first()
        if existing:
            current_app.logger.info("Earning already exists for order %s", order.id)
            return existing

        job = order.job
        earning = Earning(
            order_id=order.id,
            job_application_id=order.job_application_id,
            job_id=order.job_id,
            worker_id=order.worker_id,
            customer_id=job.customer_id,
            amount=Decimal(str(job.hourly_rate)).quantize(CENT),
            earned_date=utcnow(),
            status=EarningStatus.COMPLETED,
        )
        self.session.add(earning)
        self.session.flush()

        if events is not None:
            events.append(
                LifecycleEvent(
                    user_id=order.worker_id,
                    type=EventType.EARNING_SETTLED,
                    title="Earning recorded",
                    message=f'You earned {earning.amount} for "{job.title}".',
                    related_id=earning.id,
                    related_type="EARNING",
                )
            )
        return earning

    def _worker_query(self, worker_id):
        return self.session.query(Earning).filter(Earning.worker_id == worker_id)

    def list_for_worker(self, worker_id, start_date=None, end_date=None, status=None):
        query = self._worker_query(worker_id)
        if start_date:
            query = query.filter(Earning.earned_date >= start_date)
        if end_date:
            query = query.filter(Earning.earned_date <= end_date)
        if status:
            query = query.filter(Earning.status == status)
        return query.order_by(Earning.earned_date.desc(), Earning.id.desc()).all()

    def summary_for_worker(self, worker_id, now=None):
        now = now or utcnow()
        earnings = self._worker_query(worker_id).filter(Earning.status == EarningStatus.COMPLETED).all()

        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        start_of_week = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)

        total = sum((e.amount for e in earnings), Decimal("0"))
        this_month = sum((e.amount for e in earnings if _as_utc(e.earned_date) >= start_of_month), Decimal("0"))
        this_week = sum((e.amount for e in earnings if _as_utc(e.earned_date) >= start_of_week), Decimal("0"))
        completed = len(earnings)

        ratings = [e.order.review.rating for e in earnings if e.order and e.order.review]
        average_rating = round(sum(ratings) / len(ratings), 1) if ratings else 0.0

        return {
            "total_earnings": total.quantize(CENT),
            "completed_jobs": completed,
            "average_per_job": (total / completed).quantize(CENT) if completed else Decimal("0.00"),
            "this_month": this_month.quantize(CENT),
            "this_week": this_week.quantize(CENT),
            "average_rating": average_rating,
        }

    def monthly_for_worker(self, worker_id, year=None):
        if year is None:
            year = utcnow().year
        if not 1 <= year <= 9998:
            raise ValidationError("year is out of range.")
        start = datetime(year, 1, 1, tzinfo=timezone.utc)
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        earnings = (
            self._worker_query(worker_id)
            .filter(Earning.status == EarningStatus.COMPLETED)
            .filter(Earning.earned_date >= start, Earning.earned_date < end)
            .all()
        )

        buckets = [
            {
                "month": f"{calendar.month_name[number]} {year}",
                "month_number": number,
                "earnings": Decimal("0.00"),
                "jobs": 0,
            }
            for number in range(1, 13)
        ]
        for earning in earnings:
            bucket = buckets[_as_utc(earning.earned_date).month - 1]
            bucket["earnings"] += earning.amount
            bucket["jobs"] += 1
        for bucket in buckets:
            bucket["earnings"] = bucket["earnings"].quantize(CENT)
        return buckets

    def by_category_for_worker(self, worker_id):
        earnings = self._worker_query(worker_id).filter(Earning.status == EarningStatus.COMPLETED).all()
        totals = {}
        for earning in earnings:
            category = earning.job.category
            name = category.name if category else "Other"
            row = totals.setdefault(name, {"category": name, "earnings": Decimal("0.00"), "jobs": 0})
            row["earnings"] += earning.amount
            row["jobs"] += 1
        rows = sorted(totals.values(), key=lambda row: row["earnings"], reverse=True)
        for row in rows:
            row["earnings"] = row["earnings"].quantize(CENT)
        return rows

    def list_for_customer(self, customer_id, start_date=None, end_date=None):
        query = self.session.query(Earning).filter(Earning.customer_id == customer_id)
        if start_date:
            query = query.filter(Earning.earned_date >= start_date)
        if end_date:
            query = query.filter(Earning.earned_date <= end_date)
        return query.order_by(Earning.earned_date.desc(), Earning.id.desc()).all()
