from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from laborhub.auth import ROLE_CUSTOMER, ROLE_WORKER, role_required
from laborhub.models.base import utcnow
from laborhub.routes.api.v1.params import parse_query_datetime, parse_query_int
from laborhub.services import EarningService

api_earning_bp = Blueprint("api_earning", __name__)


@api_earning_bp.get("/worker")
@login_required
@role_required(ROLE_WORKER)
def worker_earnings():
    service = EarningService()
    earnings = service.list_for_worker(
        current_user.id,
        start_date=parse_query_datetime("startDate"),
        end_date=parse_query_datetime("endDate", end_of_day=True),
        status=(request.args.get("status") or "").strip().upper() or None,
    )
    return jsonify(
        {
            "summary": service.summary_for_worker(current_user.id),
            "earnings": [e.to_dict() for e in earnings],
        }
    )


@api_earning_bp.get("/worker/monthly")
@login_required
@role_required(ROLE_WORKER)
def worker_earnings_by_month():
    year = parse_query_int("year")
    if year is None:
        year = utcnow().year
    breakdown = EarningService().monthly_for_worker(current_user.id, year)
    return jsonify({"year": year, "monthly_breakdown": breakdown})


@api_earning_bp.get("/worker/by-category")
@login_required
@role_required(ROLE_WORKER)
def worker_earnings_by_category():
    return jsonify({"categories": EarningService().by_category_for_worker(current_user.id)})


@api_earning_bp.get("/customer")
@login_required
@role_required(ROLE_CUSTOMER)
def customer_payments():
    payments = EarningService().list_for_customer(
        current_user.id,
        start_date=parse_query_datetime("startDate"),
        end_date=parse_query_datetime("endDate", end_of_day=True),
    )
    return jsonify({"payments": [p.to_dict() for p in payments]})
