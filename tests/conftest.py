from decimal import Decimal
from types import SimpleNamespace

import jwt
import pytest

from laborhub import create_app
from laborhub.extensions import db
from laborhub.models import Category, Job, User
from laborhub.services import ApplicationService, OrderService


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """App context for calling services directly. Requests get their own context."""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


def _caller(user):
    return SimpleNamespace(id=user.id, email=user.email, role=user.role)


@pytest.fixture
def market(app):
    """Two workers, two customers and one job owned by ``customer``."""
    with app.app_context():
        worker = User(full_name="Wanjiru Worker", email="worker@example.com", role="worker")
        other_worker = User(full_name="Otieno Other", email="other.worker@example.com", role="worker")
        customer = User(full_name="Chidi Customer", email="customer@example.com", role="customer")
        other_customer = User(full_name="Oksana Other", email="other.customer@example.com", role="customer")
        category = Category(name="Plumbing")
        db.session.add_all([worker, other_worker, customer, other_customer, category])
        db.session.flush()

        job = Job(
            customer_id=customer.id,
            category_id=category.id,
            title="Fix kitchen sink",
            location="Nairobi",
            hourly_rate=Decimal("45.50"),
        )
        db.session.add(job)
        db.session.commit()

        return SimpleNamespace(
            worker=_caller(worker),
            other_worker=_caller(other_worker),
            customer=_caller(customer),
            other_customer=_caller(other_customer),
            category_id=category.id,
            job_id=job.id,
        )


@pytest.fixture
def token_for(app):
    def _token(user, **overrides):
        claims = {"sub": str(user.id), "email": user.email, "role": user.role}
        claims.update(overrides)
        return jwt.encode(claims, app.config["JWT_SECRET_KEY"], algorithm=app.config["JWT_ALGORITHM"])

    return _token


@pytest.fixture
def auth(token_for):
    def _headers(user):
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers


@pytest.fixture
def pending_application_id(app, market):
    with app.app_context():
        return ApplicationService().submit(market.worker.id, market.job_id).id


@pytest.fixture
def approved_application_id(app, market, pending_application_id):
    with app.app_context():
        ApplicationService().decide(pending_application_id, market.customer.id, "APPROVED")
    return pending_application_id


@pytest.fixture
def order_id(app, market, approved_application_id):
    with app.app_context():
        return OrderService().create_from_application(approved_application_id, market.customer.id).id


@pytest.fixture
def started_order_id(app, market, order_id):
    with app.app_context():
        OrderService().start(order_id, market.worker.id)
    return order_id


@pytest.fixture
def completed_order_id(app, market, started_order_id):
    with app.app_context():
        OrderService().complete(started_order_id, market.worker.id)
    return started_order_id
