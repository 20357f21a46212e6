from laborhub.models.application import ApplicationStatus, JobApplication
from laborhub.models.earning import Earning, EarningStatus
from laborhub.models.job import Category, Job
from laborhub.models.notification import Notification
from laborhub.models.order import Order, OrderStatus
from laborhub.models.review import Review
from laborhub.models.user import User

__all__ = [
    "User",
    "Category",
    "Job",
    "JobApplication",
    "ApplicationStatus",
    "Order",
    "OrderStatus",
    "Earning",
    "EarningStatus",
    "Review",
    "Notification",
]
