from typing import Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from dreamknot.data.database import get_db
from dreamknot.domain.schemas import ReviewCreate, ReviewOut, ReviewPage, ReviewUpdate
from dreamknot.services.review_service import ReviewService

router = APIRouter(tags=["reviews"])


@router.get("/products/{product_id}/reviews", response_model=ReviewPage)
def list_reviews(
    product_id: int,
    sort_by: Literal["newest", "oldest", "highest", "lowest", "helpful"] = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ReviewService(db).get_product_reviews(product_id, sort_by, page, limit)


@router.get("/products/{product_id}/reviews/mine", response_model=ReviewOut | None)
def my_review(product_id: int, user_id: int = Query(...), db: Session = Depends(get_db)):
    return ReviewService(db).get_user_review(user_id, product_id)


@router.post("/products/{product_id}/reviews", response_model=ReviewOut, status_code=201)
def create_review(
    product_id: int,
    payload: ReviewCreate,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    return ReviewService(db).create_review(
        user_id, product_id, payload.rating, payload.title, payload.comment
    )


@router.patch("/reviews/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    return ReviewService(db).update_review(user_id, review_id, payload.model_dump(exclude_unset=True))


@router.delete("/reviews/{review_id}", status_code=204)
def delete_review(review_id: int, user_id: int = Query(...), db: Session = Depends(get_db)):
    ReviewService(db).delete_review(user_id, review_id)
    return Response(status_code=204)
