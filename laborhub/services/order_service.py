from flask import current_app
from sqlalchemy.exc import IntegrityError

from laborhub.errors import InvalidStateTransition, NotFound, Unauthorized
from laborhub.models import ApplicationStatus, Job, JobApplication, Order, OrderStatus
from laborhub.models.base import utcnow
from laborhub.services.base import LifecycleService, coerce_id
from laborhub.services.earning_service import EarningService
from laborhub.services.events import EventType, LifecycleEvent

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


class OrderService(LifecycleService):
    """State machine for an engagement, from approved application to completion.

    ``start`` does not change the status: it stamps ``started_date`` on an
    ACCEPTED order, and ``complete`` requires that stamp. Completion and
    earning settlement commit together.
    """

    def __init__(self, session=None, notifications=None, earnings=None, requires_customer_accept=None):
        super().__init__(session=session, notifications=notifications)
        self.earnings = earnings or EarningService(self.session)
        if requires_customer_accept is None:
            requires_customer_accept = current_app.config.get("ORDER_REQUIRES_CUSTOMER_ACCEPT", False)
        self.requires_customer_accept = bool(requires_customer_accept)

    @staticmethod
    def can_transition(current, new_status):
        return new_status in ORDER_TRANSITIONS.get(current, set())

    def _for_application(self, application_id):
        return self.session.query(Order).filter_by(job_application_id=application_id).first()

    def _locked_order(self, order_id):
        order = self.locked(Order, coerce_id(order_id, "Order ID"))
        if not order:
            raise NotFound("Order not found.")
        return order

    def _lost_race(self, order):
        raise InvalidStateTransition(f"Order {order.id} changed concurrently.", current_state=order.status)

    def create_from_application(self, application_id, customer_id):
        application_id = coerce_id(application_id, "Application ID")
        with self.unit_of_work():
            application = self.session.get(JobApplication, application_id)
            if not application:
                raise NotFound("Application not found.")
            if application.job.customer_id != customer_id:
                raise Unauthorized("You can only create orders for your own jobs.")
            if application.status != ApplicationStatus.APPROVED:
                raise InvalidStateTransition(
                    "Can only create an order from an approved application.",
                    current_state=application.status,
                )

            existing = self._for_application(application.id)
            if existing:
                self.logger.info("Order %s already exists for application %s", existing.id, application.id)
                return existing

            now = utcnow()
            order = Order(
                job_application_id=application.id,
                job_id=application.job_id,
                worker_id=application.worker_id,
                status=OrderStatus.PENDING if self.requires_customer_accept else OrderStatus.ACCEPTED,
                accepted_date=None if self.requires_customer_accept else now,
            )
            self.session.add(order)
            try:
                self.session.flush()
            except IntegrityError:
                self.session.rollback()
                existing = self._for_application(application_id)
                if existing is None:
                    raise
                self.logger.warning(
                    "Concurrent order creation for application %s resolved to order %s", application_id, existing.id
                )
                return existing

            self.commit(
                [
                    LifecycleEvent(
                        user_id=order.worker_id,
                        type=EventType.ORDER_CREATED,
                        title="You have been hired",
                        message=f'An order was created for "{application.job.title}".',
                        related_id=order.id,
                        related_type="ORDER",
                    )
                ]
            )
        self.logger.info("Order %s created from application %s (%s)", order.id, application_id, order.status)
        return order

    def accept(self, order_id, customer_id):
        with self.unit_of_work():
            order = self._locked_order(order_id)
            if order.customer_id != customer_id:
                raise Unauthorized("Only the job owner can accept orders.")
            if order.status != OrderStatus.PENDING:
                raise InvalidStateTransition("Only pending orders can be accepted.", current_state=order.status)

            if not self.compare_and_set(
                order,
                [Order.status == OrderStatus.PENDING],
                {"status": OrderStatus.ACCEPTED, "accepted_date": utcnow()},
            ):
                self._lost_race(order)

            self.commit(
                [
                    LifecycleEvent(
                        user_id=order.worker_id,
                        type=EventType.ORDER_ACCEPTED,
                        title="Order accepted",
                        message=f'The customer accepted your order for "{order.job.title}".',
                        related_id=order.id,
                        related_type="ORDER",
                    )
                ]
            )
        self.logger.info("Order %s accepted by customer %s", order.id, customer_id)
        return order

    def start(self, order_id, worker_id):
        with self.unit_of_work():
            order = self._locked_order(order_id)
            if order.worker_id != worker_id:
                raise Unauthorized("You can only start your own orders.")
            if order.started_date is not None:
                raise InvalidStateTransition("Order has already been started.", current_state=order.status)
            if order.status == OrderStatus.COMPLETED:
                raise InvalidStateTransition("Order is already completed.", current_state=order.status)
            if order.status == OrderStatus.CANCELLED:
                raise InvalidStateTransition("Cannot start a cancelled order.", current_state=order.status)
            if order.status == OrderStatus.PENDING:
                raise InvalidStateTransition(
                    "Order must be accepted by the customer first.", current_state=order.status
                )

            if not self.compare_and_set(
                order,
                [Order.status == OrderStatus.ACCEPTED, Order.started_date.is_(None)],
                {"started_date": utcnow()},
            ):
                self._lost_race(order)

            self.commit(
                [
                    LifecycleEvent(
                        user_id=order.customer_id,
                        type=EventType.ORDER_STARTED,
                        title="Work started",
                        message=f'Work has started on "{order.job.title}".',
                        related_id=order.id,
                        related_type="ORDER",
                    )
                ]
            )
        self.logger.info("Order %s started by worker %s", order.id, worker_id)
        return order

    def complete(self, order_id, worker_id):
        with self.unit_of_work():
            order = self._locked_order(order_id)
            if order.worker_id != worker_id:
                raise Unauthorized("You can only complete your own orders.")
            if order.status != OrderStatus.ACCEPTED:
                raise InvalidStateTransition(
                    "Can only complete orders that are accepted.", current_state=order.status
                )
            if order.started_date is None:
                raise InvalidStateTransition(
                    "Order must be started before it can be completed.", current_state=order.status
                )

            if not self.compare_and_set(
                order,
                [
                    Order.status == OrderStatus.ACCEPTED,
                    Order.started_date.is_not(None),
                    Order.completed_date.is_(None),
                ],
                {"status": OrderStatus.COMPLETED, "completed_date": utcnow()},
            ):
                self._lost_race(order)

            events = [
                LifecycleEvent(
                    user_id=order.customer_id,
                    type=EventType.ORDER_COMPLETED,
                    title="Work completed",
                    message=f'"{order.job.title}" was marked complete. You can now leave a review.',
                    related_id=order.id,
                    related_type="ORDER",
                )
            ]
            earning = self.earnings.settle(order.id, events=events)
            self.commit(events)
        self.logger.info("Order %s completed by worker %s; earning %s settled", order.id, worker_id, earning.id)
        return order

    def cancel(self, order_id, user_id):
        with self.unit_of_work():
            order = self._locked_order(order_id)
            if not order.is_party(user_id):
                raise Unauthorized("Only the customer or the assigned worker can cancel this order.")
            if not self.can_transition(order.status, OrderStatus.CANCELLED):
                raise InvalidStateTransition(
                    f"Cannot cancel an order that is {order.status.lower()}.", current_state=order.status
                )

            if not self.compare_and_set(
                order,
                [Order.status.in_([OrderStatus.PENDING, OrderStatus.ACCEPTED])],
                {"status": OrderStatus.CANCELLED, "cancelled_date": utcnow()},
            ):
                self._lost_race(order)

            counterparty = order.customer_id if user_id == order.worker_id else order.worker_id
            self.commit(
                [
                    LifecycleEvent(
                        user_id=counterparty,
                        type=EventType.ORDER_CANCELLED,
                        title="Order cancelled",
                        message=f'The order for "{order.job.title}" was cancelled.',
                        related_id=order.id,
                        related_type="ORDER",
                    )
                ]
            )
        self.logger.info("Order %s cancelled by user %s", order.id, user_id)
        return order

    def get_for_party(self, order_id, user_id):
        order = self.session.get(Order, coerce_id(order_id, "Order ID"))
        if not order:
            raise NotFound("Order not found.")
        if not order.is_party(user_id):
            raise Unauthorized("You do not have permission to view this order.")
        return order

    def list_for_worker(self, worker_id):
        return (
            self.session.query(Order)
            .filter(Order.worker_id == worker_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

    def list_for_customer(self, customer_id):
        return (
            self.session.query(Order)
            .join(Job, Job.id == Order.job_id)
            .filter(Job.customer_id == customer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )
