import pytest

from laborhub.errors import InvalidStateTransition, NotFound, Unauthorized, ValidationError
from laborhub.extensions import db
from laborhub.models import Earning, Notification, Order, OrderStatus
from laborhub.services import EarningService, EventType, OrderService


class TestCreateFromApplication:
    def test_creates_accepted_order(self, ctx, market, approved_application_id):
        order = OrderService().create_from_application(approved_application_id, market.customer.id)

        assert order.status == OrderStatus.ACCEPTED
        assert order.accepted_date is not None
        assert order.started_date is None
        assert order.worker_id == market.worker.id
        assert order.job_id == market.job_id
        assert order.customer_id == market.customer.id

    def test_is_idempotent(self, ctx, market, approved_application_id):
        service = OrderService()
        first = service.create_from_application(approved_application_id, market.customer.id)
        second = service.create_from_application(approved_application_id, market.customer.id)

        assert first.id == second.id
        assert Order.query.count() == 1
        created = Notification.query.filter_by(user_id=market.worker.id, type=EventType.ORDER_CREATED).count()
        assert created == 1

    def test_insert_race_resolves_to_existing_order(self, ctx, market, order_id, monkeypatch):
        application_id = db.session.get(Order, order_id).job_application_id
        real_lookup = OrderService._for_application
        lookups = []

        def stale_first_lookup(self, app_id):
            lookups.append(app_id)
            if len(lookups) == 1:
                return None
            return real_lookup(self, app_id)

        monkeypatch.setattr(OrderService, "_for_application", stale_first_lookup)

        order = OrderService().create_from_application(application_id, market.customer.id)

        assert order.id == order_id
        assert len(lookups) == 2
        assert Order.query.count() == 1

    def test_pending_application_is_rejected(self, ctx, market, pending_application_id):
        with pytest.raises(InvalidStateTransition) as excinfo:
            OrderService().create_from_application(pending_application_id, market.customer.id)

        assert excinfo.value.current_state == "PENDING"
        assert Order.query.count() == 0

    def test_only_job_owner_can_hire(self, ctx, market, approved_application_id):
        with pytest.raises(Unauthorized):
            OrderService().create_from_application(approved_application_id, market.other_customer.id)

    def test_unknown_application(self, ctx, market):
        with pytest.raises(NotFound):
            OrderService().create_from_application(9999, market.customer.id)

    def test_malformed_application_id(self, ctx, market):
        with pytest.raises(ValidationError):
            OrderService().create_from_application("not-a-number", market.customer.id)


class TestStart:
    def test_assigned_worker_starts(self, ctx, market, order_id):
        order = OrderService().start(order_id, market.worker.id)

        assert order.started_date is not None
        assert order.status == OrderStatus.ACCEPTED
        note = Notification.query.filter_by(user_id=market.customer.id, type=EventType.ORDER_STARTED).one()
        assert note.related_id == order_id

    def test_other_worker_is_unauthorized(self, ctx, market, order_id):
        with pytest.raises(Unauthorized):
            OrderService().start(order_id, market.other_worker.id)

        assert db.session.get(Order, order_id).started_date is None

    def test_second_start_is_invalid(self, ctx, market, started_order_id):
        with pytest.raises(InvalidStateTransition, match="already been started"):
            OrderService().start(started_order_id, market.worker.id)

    def test_cannot_start_cancelled_order(self, ctx, market, order_id):
        service = OrderService()
        service.cancel(order_id, market.customer.id)

        with pytest.raises(InvalidStateTransition, match="cancelled"):
            service.start(order_id, market.worker.id)

    def test_unknown_order(self, ctx, market):
        with pytest.raises(NotFound):
            OrderService().start(9999, market.worker.id)


class TestComplete:
    def test_complete_before_start_is_invalid(self, ctx, market, order_id):
        with pytest.raises(InvalidStateTransition):
            OrderService().complete(order_id, market.worker.id)

        assert db.session.get(Order, order_id).status == OrderStatus.ACCEPTED
        assert Earning.query.count() == 0

    def test_complete_settles_one_earning(self, ctx, market, started_order_id):
        order = OrderService().complete(started_order_id, market.worker.id)

        assert order.status == OrderStatus.COMPLETED
        assert order.completed_date is not None
        earnings = Earning.query.filter_by(order_id=started_order_id).all()
        assert len(earnings) == 1
        assert earnings[0].amount == order.job.hourly_rate
        assert earnings[0].customer_id == market.customer.id

    def test_complete_notifies_both_parties(self, ctx, market, started_order_id):
        OrderService().complete(started_order_id, market.worker.id)

        assert Notification.query.filter_by(user_id=market.customer.id, type=EventType.ORDER_COMPLETED).count() == 1
        assert Notification.query.filter_by(user_id=market.worker.id, type=EventType.EARNING_SETTLED).count() == 1

    def test_failed_settlement_leaves_order_uncompleted(self, ctx, market, started_order_id, monkeypatch):
        def broken_settle(self, order_id, events=None):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setattr(EarningService, "settle", broken_settle)

        with pytest.raises(RuntimeError):
            OrderService().complete(started_order_id, market.worker.id)

        order = db.session.get(Order, started_order_id)
        assert order.status == OrderStatus.ACCEPTED
        assert order.completed_date is None
        assert Earning.query.count() == 0

    def test_second_complete_is_invalid_and_keeps_one_earning(self, ctx, market, completed_order_id):
        with pytest.raises(InvalidStateTransition) as excinfo:
            OrderService().complete(completed_order_id, market.worker.id)

        assert excinfo.value.current_state == OrderStatus.COMPLETED
        assert Earning.query.filter_by(order_id=completed_order_id).count() == 1

    def test_other_worker_cannot_complete(self, ctx, market, started_order_id):
        with pytest.raises(Unauthorized):
            OrderService().complete(started_order_id, market.other_worker.id)

    def test_start_after_complete_is_invalid(self, ctx, market, completed_order_id):
        with pytest.raises(InvalidStateTransition):
            OrderService().start(completed_order_id, market.worker.id)


class TestCancel:
    def test_customer_cancels_and_worker_hears(self, ctx, market, order_id):
        order = OrderService().cancel(order_id, market.customer.id)

        assert order.status == OrderStatus.CANCELLED
        assert order.cancelled_date is not None
        assert Notification.query.filter_by(user_id=market.worker.id, type=EventType.ORDER_CANCELLED).count() == 1

    def test_worker_cancels_and_customer_hears(self, ctx, market, started_order_id):
        OrderService().cancel(started_order_id, market.worker.id)

        assert Notification.query.filter_by(user_id=market.customer.id, type=EventType.ORDER_CANCELLED).count() == 1

    def test_outsider_cannot_cancel(self, ctx, market, order_id):
        with pytest.raises(Unauthorized):
            OrderService().cancel(order_id, market.other_customer.id)

    def test_completed_order_cannot_be_cancelled(self, ctx, market, completed_order_id):
        with pytest.raises(InvalidStateTransition):
            OrderService().cancel(completed_order_id, market.customer.id)


class TestCustomerAcceptance:
    @pytest.fixture
    def service(self, ctx):
        return OrderService(requires_customer_accept=True)

    def test_new_order_waits_for_customer(self, service, market, approved_application_id):
        order = service.create_from_application(approved_application_id, market.customer.id)

        assert order.status == OrderStatus.PENDING
        assert order.accepted_date is None
        with pytest.raises(InvalidStateTransition, match="accepted by the customer"):
            service.start(order.id, market.worker.id)

    def test_customer_accepts(self, service, market, approved_application_id):
        order = service.create_from_application(approved_application_id, market.customer.id)
        order = service.accept(order.id, market.customer.id)

        assert order.status == OrderStatus.ACCEPTED
        assert order.accepted_date is not None
        assert service.start(order.id, market.worker.id).started_date is not None

    def test_only_customer_accepts(self, service, market, approved_application_id):
        order = service.create_from_application(approved_application_id, market.customer.id)

        with pytest.raises(Unauthorized):
            service.accept(order.id, market.worker.id)

    def test_accept_twice_is_invalid(self, service, market, approved_application_id):
        order = service.create_from_application(approved_application_id, market.customer.id)
        service.accept(order.id, market.customer.id)

        with pytest.raises(InvalidStateTransition):
            service.accept(order.id, market.customer.id)

    def test_setting_is_read_from_config(self, app, ctx):
        app.config["ORDER_REQUIRES_CUSTOMER_ACCEPT"] = True

        assert OrderService().requires_customer_accept is True


class TestReads:
    def test_transition_table(self):
        assert OrderService.can_transition(OrderStatus.PENDING, OrderStatus.ACCEPTED)
        assert OrderService.can_transition(OrderStatus.ACCEPTED, OrderStatus.COMPLETED)
        assert not OrderService.can_transition(OrderStatus.COMPLETED, OrderStatus.CANCELLED)
        assert not OrderService.can_transition(OrderStatus.CANCELLED, OrderStatus.ACCEPTED)

    def test_get_for_party(self, ctx, market, order_id):
        service = OrderService()

        assert service.get_for_party(order_id, market.worker.id).id == order_id
        assert service.get_for_party(order_id, market.customer.id).id == order_id
        with pytest.raises(Unauthorized):
            service.get_for_party(order_id, market.other_worker.id)

    def test_lists_by_party(self, ctx, market, order_id):
        service = OrderService()

        assert [o.id for o in service.list_for_worker(market.worker.id)] == [order_id]
        assert [o.id for o in service.list_for_customer(market.customer.id)] == [order_id]
        assert service.list_for_worker(market.other_worker.id) == []


class TestOrderRoutes:
    def test_full_flow_over_http(self, client, market, auth, approved_application_id):
        created = client.post(
            "/api/v1/orders", json={"applicationId": approved_application_id}, headers=auth(market.customer)
        )
        assert created.status_code == 201
        order_id = created.get_json()["order"]["id"]

        again = client.post(
            "/api/v1/orders", json={"applicationId": approved_application_id}, headers=auth(market.customer)
        )
        assert again.status_code == 201
        assert again.get_json()["order"]["id"] == order_id

        early = client.patch(f"/api/v1/orders/{order_id}/complete", headers=auth(market.worker))
        assert early.status_code == 400
        assert early.get_json()["kind"] == "invalid_state"

        started = client.patch(f"/api/v1/orders/{order_id}/start", headers=auth(market.worker))
        assert started.status_code == 200
        assert started.get_json()["order"]["started_date"] is not None

        done = client.patch(f"/api/v1/orders/{order_id}/complete", headers=auth(market.worker))
        assert done.status_code == 200
        assert done.get_json()["order"]["status"] == "COMPLETED"

    def test_customer_cannot_start(self, client, market, auth, order_id):
        res = client.patch(f"/api/v1/orders/{order_id}/start", headers=auth(market.customer))

        assert res.status_code == 403

    def test_other_worker_start_is_403(self, client, market, auth, order_id):
        res = client.patch(f"/api/v1/orders/{order_id}/start", headers=auth(market.other_worker))

        assert res.status_code == 403
        assert res.get_json()["kind"] == "unauthorized"

    def test_unknown_order_is_404(self, client, market, auth):
        res = client.patch("/api/v1/orders/9999/start", headers=auth(market.worker))

        assert res.status_code == 404
        assert res.get_json()["kind"] == "not_found"

    def test_get_order_includes_review_slot(self, client, market, auth, order_id):
        res = client.get(f"/api/v1/orders/{order_id}", headers=auth(market.customer))

        assert res.status_code == 200
        assert res.get_json()["order"]["review"] is None

    def test_outsider_cannot_read_order(self, client, market, auth, order_id):
        res = client.get(f"/api/v1/orders/{order_id}", headers=auth(market.other_customer))

        assert res.status_code == 403

    def test_order_lists(self, client, market, auth, order_id):
        worker = client.get("/api/v1/orders/worker", headers=auth(market.worker)).get_json()
        customer = client.get("/api/v1/orders/customer", headers=auth(market.customer)).get_json()

        assert worker["count"] == 1
        assert customer["orders"][0]["id"] == order_id

    def test_cancel_over_http(self, client, market, auth, order_id):
        res = client.patch(f"/api/v1/orders/{order_id}/cancel", headers=auth(market.worker))

        assert res.status_code == 200
        assert res.get_json()["order"]["status"] == "CANCELLED"

    def test_accept_when_not_pending(self, client, market, auth, order_id):
        res = client.patch(f"/api/v1/orders/{order_id}/accept", headers=auth(market.customer))

        assert res.status_code == 400
        assert res.get_json()["state"] == "ACCEPTED"
