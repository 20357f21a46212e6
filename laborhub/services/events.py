from dataclasses import dataclass


class EventType:
    APPLICATION_RECEIVED = "APPLICATION_RECEIVED"
    APPLICATION_APPROVED = "APPLICATION_APPROVED"
    APPLICATION_REJECTED = "APPLICATION_REJECTED"
    APPLICATION_WITHDRAWN = "APPLICATION_WITHDRAWN"
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_ACCEPTED = "ORDER_ACCEPTED"
    ORDER_STARTED = "ORDER_STARTED"
    ORDER_COMPLETED = "ORDER_COMPLETED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    EARNING_SETTLED = "EARNING_SETTLED"
    REVIEW_RECEIVED = "REVIEW_RECEIVED"
    REVIEW_REPLIED = "REVIEW_REPLIED"


@dataclass(frozen=True)
class LifecycleEvent:
    """Something a party should hear about once the owning transaction has committed."""

    user_id: int
    type: str
    title: str
    message: str
    related_id: int | None = None
    related_type: str | None = None
