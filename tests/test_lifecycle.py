"""End-to-end walk through application, order, earning and review for one engagement."""

import pytest

from laborhub.errors import Conflict, InvalidStateTransition, Unauthorized, ValidationError
from laborhub.models import ApplicationStatus, Earning, Order, OrderStatus
from laborhub.services import ApplicationService, OrderService, ReviewService


class TestEngagementLifecycle:
    def test_happy_path_with_every_guard(self, ctx, market):
        applications = ApplicationService()
        orders = OrderService()
        reviews = ReviewService()

        application = applications.submit(market.worker.id, market.job_id)
        assert application.status == ApplicationStatus.PENDING
        with pytest.raises(Conflict):
            applications.submit(market.worker.id, market.job_id)

        application = applications.decide(application.id, market.customer.id, "APPROVED")
        assert application.status == ApplicationStatus.APPROVED

        order = orders.create_from_application(application.id, market.customer.id)
        assert order.status == OrderStatus.ACCEPTED
        assert orders.create_from_application(application.id, market.customer.id).id == order.id
        assert Order.query.count() == 1

        with pytest.raises(InvalidStateTransition):
            orders.complete(order.id, market.worker.id)

        with pytest.raises(Unauthorized):
            orders.start(order.id, market.other_worker.id)
        order = orders.start(order.id, market.worker.id)
        assert order.started_date is not None
        with pytest.raises(InvalidStateTransition):
            orders.start(order.id, market.worker.id)

        order = orders.complete(order.id, market.worker.id)
        assert order.status == OrderStatus.COMPLETED
        earnings = Earning.query.filter_by(order_id=order.id).all()
        assert len(earnings) == 1
        assert earnings[0].amount == order.job.hourly_rate

        with pytest.raises(ValidationError):
            reviews.create(order.id, market.customer.id, 6, "great")
        review = reviews.create(order.id, market.customer.id, 5, "great")
        with pytest.raises(Conflict):
            reviews.create(order.id, market.customer.id, 5, "great")

        review = reviews.reply(review.id, market.worker.id, "Thanks for having me")
        assert review.worker_reply == "Thanks for having me"
        with pytest.raises(Conflict):
            reviews.reply(review.id, market.worker.id, "Again")

    def test_rejected_application_never_becomes_an_order(self, ctx, market, pending_application_id):
        ApplicationService().decide(pending_application_id, market.customer.id, "REJECTED")

        with pytest.raises(InvalidStateTransition):
            OrderService().create_from_application(pending_application_id, market.customer.id)
        assert Order.query.count() == 0

    def test_cancelled_order_settles_nothing(self, ctx, market, started_order_id):
        orders = OrderService()
        orders.cancel(started_order_id, market.customer.id)

        with pytest.raises(InvalidStateTransition):
            orders.complete(started_order_id, market.worker.id)
        with pytest.raises(InvalidStateTransition):
            ReviewService().create(started_order_id, market.customer.id, 5, "great")
        assert Earning.query.count() == 0
