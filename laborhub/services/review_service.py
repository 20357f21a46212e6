from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from laborhub.errors import Conflict, InvalidStateTransition, NotFound, Unauthorized, ValidationError
from laborhub.models import Order, OrderStatus, Review
from laborhub.models.base import utcnow
from laborhub.services.base import LifecycleService, coerce_id
from laborhub.services.events import EventType, LifecycleEvent

MIN_RATING = 1
MAX_RATING = 5


def parse_rating(rating):
    if isinstance(rating, bool):
        raise ValidationError("Rating must be an integer between 1 and 5.")
    if isinstance(rating, float) and not rating.is_integer():
        raise ValidationError("Rating must be an integer between 1 and 5.")
    try:
        rating_int = int(str(rating).strip()) if isinstance(rating, str) else int(rating)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Rating must be an integer between 1 and 5.") from exc
    if rating_int < MIN_RATING or rating_int > MAX_RATING:
        raise ValidationError("Rating must be an integer between 1 and 5.")
    return rating_int


def require_text(value, label):
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"{label} is required.")
    return text


class ReviewService(LifecycleService):
    """One customer review per completed order, one worker reply per review."""

    def _existing_review(self, order_id):
        return self.session.query(Review.id).filter_by(order_id=order_id).first()

    def create(self, order_id, reviewer_id, rating, comment):
        rating = parse_rating(rating)
        comment = require_text(comment, "Comment")
        order_id = coerce_id(order_id, "Order ID")

        with self.unit_of_work():
            order = self.locked(Order, order_id)
            if not order:
                raise NotFound("Order not found.")
            if order.customer_id != reviewer_id:
                raise Unauthorized("Only the customer can review this order.")
            if order.status != OrderStatus.COMPLETED:
                raise InvalidStateTransition("Can only review completed orders.", current_state=order.status)
            if self._existing_review(order.id):
                raise Conflict("Review already exists for this order.")

            review = Review(order_id=order.id, reviewer_id=reviewer_id, rating=rating, comment=comment)
            self.session.add(review)
            try:
                self.session.flush()
            except IntegrityError as exc:
                self.logger.warning("Concurrent review submission for order %s", order.id)
                raise Conflict("Review already exists for this order.") from exc

            reviewer = review.reviewer
            self.commit(
                [
                    LifecycleEvent(
                        user_id=order.worker_id,
                        type=EventType.REVIEW_RECEIVED,
                        title="New review received",
                        message=f'{reviewer.full_name} reviewed you with {rating} stars for "{order.job.title}".',
                        related_id=review.id,
                        related_type="REVIEW",
                    )
                ]
            )
        self.logger.info("Review %s created for order %s", review.id, order_id)
        return review

    def reply(self, review_id, worker_id, reply):
        reply = require_text(reply, "Reply")
        review_id = coerce_id(review_id, "Review ID")

        with self.unit_of_work():
            review = self.locked(Review, review_id)
            if not review:
                raise NotFound("Review not found.")
            if review.order.worker_id != worker_id:
                raise Unauthorized("You can only reply to reviews about you.")
            if review.worker_reply is not None:
                raise Conflict("Reply already exists for this review.")

            if not self.compare_and_set(
                review,
                [Review.worker_reply.is_(None)],
                {"worker_reply": reply, "replied_at": utcnow()},
            ):
                raise Conflict("Reply already exists for this review.")

            self.commit(
                [
                    LifecycleEvent(
                        user_id=review.reviewer_id,
                        type=EventType.REVIEW_REPLIED,
                        title="The worker replied to your review",
                        message=f'Your review for "{review.order.job.title}" received a reply.',
                        related_id=review.id,
                        related_type="REVIEW",
                    )
                ]
            )
        self.logger.info("Worker %s replied to review %s", worker_id, review_id)
        return review

    def list_for_worker(self, worker_id):
        return (
            self.session.query(Review)
            .join(Order, Order.id == Review.order_id)
            .filter(Order.worker_id == worker_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )

    def worker_rating_stats(self, worker_id):
        average, total = (
            self.session.query(func.avg(Review.rating), func.count(Review.id))
            .join(Order, Order.id == Review.order_id)
            .filter(Order.worker_id == worker_id)
            .one()
        )
        return {
            "average_rating": round(float(average or 0), 2),
            "total_reviews": int(total or 0),
        }

    def get_for_order(self, order_id, user_id):
        order = self.session.get(Order, coerce_id(order_id, "Order ID"))
        if not order:
            raise NotFound("Order not found.")
        if not order.is_party(user_id):
            raise Unauthorized("You do not have permission to view this review.")
        return order.review
