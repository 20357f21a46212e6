from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from laborhub.auth import ROLE_CUSTOMER, ROLE_WORKER, role_required
from laborhub.errors import ValidationError
from laborhub.routes.api.v1.params import json_body
from laborhub.services import ApplicationService

api_application_bp = Blueprint("api_application", __name__)


@api_application_bp.post("")
@login_required
@role_required(ROLE_WORKER)
def submit_application():
    payload = json_body()
    job_id = payload.get("jobId", payload.get("job_id"))
    if job_id in (None, ""):
        raise ValidationError("Job ID is required.")
    application = ApplicationService().submit(worker_id=current_user.id, job_id=job_id)
    return jsonify({"message": "Application submitted successfully", "application": application.to_dict()}), 201


@api_application_bp.get("/my-applications")
@login_required
@role_required(ROLE_WORKER)
def my_applications():
    applications = ApplicationService().list_for_worker(current_user.id)
    return jsonify({"applications": [a.to_dict(include_worker=False) for a in applications]})


@api_application_bp.get("/my-jobs")
@login_required
@role_required(ROLE_CUSTOMER)
def applications_for_my_jobs():
    applications = ApplicationService().list_for_customer(current_user.id)
    return jsonify({"applications": [a.to_dict() for a in applications]})


@api_application_bp.get("/job/<int:job_id>")
@login_required
@role_required(ROLE_CUSTOMER)
def applications_for_job(job_id):
    applications = ApplicationService().list_for_job(job_id, current_user.id)
    return jsonify({"applications": [a.to_dict(include_job=False) for a in applications]})


@api_application_bp.patch("/<int:application_id>/status")
@login_required
@role_required(ROLE_CUSTOMER)
def decide_application(application_id):
    payload = json_body()
    application = ApplicationService().decide(application_id, current_user.id, payload.get("status"))
    return jsonify({"message": "Application status updated successfully", "application": application.to_dict()})


@api_application_bp.delete("/<int:application_id>")
@login_required
@role_required(ROLE_WORKER)
def withdraw_application(application_id):
    application = ApplicationService().withdraw(application_id, current_user.id)
    return jsonify({"message": "Application withdrawn successfully", "application": application.to_dict()})
