from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from laborhub.auth import ROLE_CUSTOMER, ROLE_WORKER, role_required
from laborhub.errors import ValidationError
from laborhub.routes.api.v1.params import json_body
from laborhub.services import ReviewService

api_review_bp = Blueprint("api_review", __name__)


@api_review_bp.post("")
@login_required
@role_required(ROLE_CUSTOMER)
def create_review():
    payload = json_body()
    order_id = payload.get("orderId", payload.get("order_id"))
    if order_id in (None, ""):
        raise ValidationError("Order ID is required.")
    review = ReviewService().create(
        order_id=order_id,
        reviewer_id=current_user.id,
        rating=payload.get("rating"),
        comment=payload.get("comment"),
    )
    return jsonify({"message": "Review submitted successfully", "review": review.to_dict()}), 201


@api_review_bp.get("/worker")
@login_required
@role_required(ROLE_WORKER)
def worker_reviews():
    service = ReviewService()
    reviews = service.list_for_worker(current_user.id)
    return jsonify(
        {
            "reviews": [r.to_dict() for r in reviews],
            "stats": service.worker_rating_stats(current_user.id),
        }
    )


@api_review_bp.get("/order/<int:order_id>")
@login_required
def review_for_order(order_id):
    review = ReviewService().get_for_order(order_id, current_user.id)
    return jsonify({"review": review.to_dict() if review else None})


@api_review_bp.patch("/<int:review_id>/reply")
@login_required
@role_required(ROLE_WORKER)
def reply_to_review(review_id):
    payload = json_body()
    review = ReviewService().reply(review_id, current_user.id, payload.get("reply"))
    return jsonify({"message": "Reply added successfully", "review": review.to_dict()})
