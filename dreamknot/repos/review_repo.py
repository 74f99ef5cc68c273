from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dreamknot.data.models.review import ReviewModel

_SORTS = {
    "newest": (ReviewModel.created_at.desc(), ReviewModel.id.desc()),
    "oldest": (ReviewModel.created_at.asc(), ReviewModel.id.asc()),
    "highest": (ReviewModel.rating.desc(), ReviewModel.id.desc()),
    "lowest": (ReviewModel.rating.asc(), ReviewModel.id.asc()),
    # no helpful votes yet, rating then recency
    "helpful": (ReviewModel.rating.desc(), ReviewModel.created_at.desc()),
}


class ReviewRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_review(self, review_id: int) -> ReviewModel | None:
        return self.db.get(ReviewModel, review_id)

    def get_user_review(self, user_id: int, product_id: int) -> ReviewModel | None:
        return self.db.execute(
            select(ReviewModel).where(
                ReviewModel.user_id == user_id,
                ReviewModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def list_product_reviews(self, product_id: int, sort_by: str, offset: int, limit: int) -> list[ReviewModel]:
        order_by = _SORTS.get(sort_by, _SORTS["newest"])
        return list(
            self.db.execute(
                select(ReviewModel)
                .where(ReviewModel.product_id == product_id)
                .order_by(*order_by)
                .offset(offset)
                .limit(limit)
            ).scalars()
        )

    def count_product_reviews(self, product_id: int) -> int:
        return self.db.execute(
            select(func.count(ReviewModel.id)).where(ReviewModel.product_id == product_id)
        ).scalar_one()

    def product_ratings(self, product_id: int) -> list[int]:
        return list(
            self.db.execute(
                select(ReviewModel.rating).where(ReviewModel.product_id == product_id)
            ).scalars()
        )

    def add_review(self, review: ReviewModel) -> ReviewModel:
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def save(self, review: ReviewModel) -> ReviewModel:
        self.db.commit()
        self.db.refresh(review)
        return review

    def delete_review(self, review: ReviewModel) -> None:
        self.db.delete(review)
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
