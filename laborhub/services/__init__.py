from laborhub.services.application_service import ApplicationService
from laborhub.services.earning_service import EarningService
from laborhub.services.events import EventType, LifecycleEvent
from laborhub.services.notification_service import NotificationService
from laborhub.services.order_service import OrderService
from laborhub.services.review_service import ReviewService

__all__ = [
    "ApplicationService",
    "EarningService",
    "EventType",
    "LifecycleEvent",
    "NotificationService",
    "OrderService",
    "ReviewService",
]
