# dreamknot/services/review_service.py
import math
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dreamknot.data.models.review import ReviewModel
from dreamknot.domain.errors import ConflictError, NotFoundError, ValidationError
from dreamknot.repos.order_repo import OrderRepo
from dreamknot.repos.review_repo import ReviewRepo
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

# order states that count as a completed purchase for the verified badge
VERIFIED_ORDER_STATUSES = ("delivered", "shipped")


def _check_rating(rating: int) -> None:
    if rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5", field="rating")


class ReviewService:
    def __init__(self, db: Session):
        self.repo = ReviewRepo(db)
        self.order_repo = OrderRepo(db)

    def has_purchased(self, user_id: int, product_id: int) -> bool:
        return self.order_repo.has_fulfilled_purchase(user_id, product_id, VERIFIED_ORDER_STATUSES)

    def create_review(
        self,
        user_id: int,
        product_id: int,
        rating: int,
        title: str | None = None,
        comment: str | None = None,
    ) -> ReviewModel:
        _check_rating(rating)

        if self.repo.get_user_review(user_id, product_id):
            raise ConflictError("You have already reviewed this product")

        review = ReviewModel(
            user_id=user_id,
            product_id=product_id,
            rating=rating,
            title=title,
            comment=comment,
            is_verified=self.has_purchased(user_id, product_id),
        )
        try:
            created = self.repo.add_review(review)
        except IntegrityError:
            # a concurrent request won the unique (user, product) slot
            self.repo.rollback()
            raise ConflictError("You have already reviewed this product")

        logger.info(f"Review {created.id} by user {user_id} on product {product_id} (verified={created.is_verified})")
        return created

    def update_review(self, user_id: int, review_id: int, changes: Dict[str, Any]) -> ReviewModel:
        review = self._owned(user_id, review_id)

        if "rating" in changes:
            if changes["rating"] is None:
                raise ValidationError("Rating cannot be null", field="rating")
            _check_rating(changes["rating"])

        for field in ("rating", "title", "comment"):
            if field in changes:
                setattr(review, field, changes[field])
        return self.repo.save(review)

    def delete_review(self, user_id: int, review_id: int) -> None:
        review = self._owned(user_id, review_id)
        self.repo.delete_review(review)
        logger.info(f"Review {review_id} deleted by user {user_id}")

    def get_user_review(self, user_id: int, product_id: int) -> ReviewModel | None:
        return self.repo.get_user_review(user_id, product_id)

    def get_stats(self, product_id: int) -> Dict[str, Any]:
        ratings = self.repo.product_ratings(product_id)
        total = len(ratings)
        average = sum(ratings) / total if total else 0

        return {
            "average_rating": round(average, 1),
            "total_reviews": total,
            "rating_distribution": {star: ratings.count(star) for star in (5, 4, 3, 2, 1)},
        }

    def get_product_reviews(
        self,
        product_id: int,
        sort_by: str = "newest",
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")

        total = self.repo.count_product_reviews(product_id)
        reviews = self.repo.list_product_reviews(product_id, sort_by, (page - 1) * limit, limit)

        return {
            "reviews": reviews,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
            "stats": self.get_stats(product_id),
        }

    def _owned(self, user_id: int, review_id: int) -> ReviewModel:
        review = self.repo.get_review(review_id)
        if not review or review.user_id != user_id:
            raise NotFoundError("Review")
        return review
