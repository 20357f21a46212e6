from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from laborhub.auth import ROLE_CUSTOMER, ROLE_WORKER, role_required
from laborhub.errors import ValidationError
from laborhub.routes.api.v1.params import json_body
from laborhub.services import OrderService

api_order_bp = Blueprint("api_order", __name__)


@api_order_bp.post("")
@login_required
@role_required(ROLE_CUSTOMER)
def create_order():
    payload = json_body()
    application_id = payload.get("applicationId", payload.get("application_id"))
    if application_id in (None, ""):
        raise ValidationError("Application ID is required.")
    order = OrderService().create_from_application(application_id, current_user.id)
    return jsonify({"message": "Order created successfully", "order": order.to_dict()}), 201


@api_order_bp.get("/worker")
@login_required
@role_required(ROLE_WORKER)
def worker_orders():
    orders = OrderService().list_for_worker(current_user.id)
    return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)})


@api_order_bp.get("/customer")
@login_required
@role_required(ROLE_CUSTOMER)
def customer_orders():
    orders = OrderService().list_for_customer(current_user.id)
    return jsonify({"orders": [o.to_dict(include_review=True) for o in orders], "count": len(orders)})


@api_order_bp.patch("/<int:order_id>/accept")
@login_required
@role_required(ROLE_CUSTOMER)
def accept_order(order_id):
    order = OrderService().accept(order_id, current_user.id)
    return jsonify({"message": "Order accepted successfully", "order": order.to_dict()})


@api_order_bp.patch("/<int:order_id>/start")
@login_required
@role_required(ROLE_WORKER)
def start_order(order_id):
    order = OrderService().start(order_id, current_user.id)
    return jsonify({"message": "Order started successfully", "order": order.to_dict()})


@api_order_bp.patch("/<int:order_id>/complete")
@login_required
@role_required(ROLE_WORKER)
def complete_order(order_id):
    order = OrderService().complete(order_id, current_user.id)
    return jsonify({"message": "Order completed successfully", "order": order.to_dict()})


@api_order_bp.patch("/<int:order_id>/cancel")
@login_required
@role_required(ROLE_CUSTOMER, ROLE_WORKER)
def cancel_order(order_id):
    order = OrderService().cancel(order_id, current_user.id)
    return jsonify({"message": "Order cancelled successfully", "order": order.to_dict()})


@api_order_bp.get("/<int:order_id>")
@login_required
def get_order(order_id):
    order = OrderService().get_for_party(order_id, current_user.id)
    return jsonify({"order": order.to_dict(include_review=True)})
