from flask import Blueprint

from laborhub.routes.api.v1.applications import api_application_bp
from laborhub.routes.api.v1.earnings import api_earning_bp
from laborhub.routes.api.v1.notifications import api_notification_bp
from laborhub.routes.api.v1.orders import api_order_bp
from laborhub.routes.api.v1.reviews import api_review_bp

api_v1_bp = Blueprint("api_v1", __name__)
api_v1_bp.register_blueprint(api_application_bp, url_prefix="/applications")
api_v1_bp.register_blueprint(api_order_bp, url_prefix="/orders")
api_v1_bp.register_blueprint(api_earning_bp, url_prefix="/earnings")
api_v1_bp.register_blueprint(api_review_bp, url_prefix="/reviews")
api_v1_bp.register_blueprint(api_notification_bp, url_prefix="/notifications")
