"""Review store: one review per product, verified purchases, stats."""

from decimal import Decimal

import pytest

from conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID
from dreamknot.data.models import OrderItemModel, OrderModel
from dreamknot.domain.errors import ConflictError, NotFoundError, ValidationError
from dreamknot.services.review_service import ReviewService

MUG = 1


def place_order(db, user_id, product_id, order_status, payment_status="paid"):
    order = OrderModel(
        user_id=user_id,
        total_amount=Decimal("50.00"),
        discount_amount=Decimal("0"),
        shipping_address="{}",
        billing_address="{}",
        payment_status=payment_status,
        order_status=order_status,
    )
    db.add(order)
    db.flush()
    db.add(OrderItemModel(order_id=order.id, product_id=product_id, qty=1, price=Decimal("50.00")))
    db.commit()
    return order


@pytest.fixture()
def service(db):
    return ReviewService(db)


class TestCreateReview:
    def test_second_review_on_same_product_conflicts(self, service):
        service.create_review(CUSTOMER_ID, MUG, 5, "Lovely")

        with pytest.raises(ConflictError):
            service.create_review(CUSTOMER_ID, MUG, 3, "Changed my mind")

        assert service.get_stats(MUG)["total_reviews"] == 1

    def test_other_users_can_review_the_same_product(self, service):
        service.create_review(CUSTOMER_ID, MUG, 5)
        service.create_review(OTHER_CUSTOMER_ID, MUG, 4)
        assert service.get_stats(MUG)["total_reviews"] == 2

    @pytest.mark.parametrize("status", ["shipped", "delivered"])
    def test_fulfilled_purchase_marks_review_verified(self, service, db, status):
        place_order(db, CUSTOMER_ID, MUG, status)
        assert service.create_review(CUSTOMER_ID, MUG, 5).is_verified is True

    @pytest.mark.parametrize(
        "order_status, payment_status",
        [("processing", "paid"), ("cancelled", "paid"), ("delivered", "pending")],
    )
    def test_unfulfilled_or_unpaid_purchase_is_not_verified(self, service, db, order_status, payment_status):
        place_order(db, CUSTOMER_ID, MUG, order_status, payment_status)
        assert service.create_review(CUSTOMER_ID, MUG, 4).is_verified is False

    def test_purchase_of_another_product_does_not_verify(self, service, db):
        place_order(db, CUSTOMER_ID, 2, "delivered")
        assert service.create_review(CUSTOMER_ID, MUG, 4).is_verified is False

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_rating_outside_one_to_five_is_rejected(self, service, rating):
        with pytest.raises(ValidationError):
            service.create_review(CUSTOMER_ID, MUG, rating)


class TestOwnership:
    def test_owner_can_update(self, service):
        review = service.create_review(CUSTOMER_ID, MUG, 2, "Meh")

        updated = service.update_review(CUSTOMER_ID, review.id, {"rating": 4, "comment": "Grew on me"})

        assert updated.rating == 4
        assert updated.title == "Meh"
        assert updated.comment == "Grew on me"

    def test_update_checks_rating(self, service):
        review = service.create_review(CUSTOMER_ID, MUG, 2)
        with pytest.raises(ValidationError):
            service.update_review(CUSTOMER_ID, review.id, {"rating": 9})

    def test_rating_cannot_be_cleared(self, service):
        review = service.create_review(CUSTOMER_ID, MUG, 2)
        with pytest.raises(ValidationError):
            service.update_review(CUSTOMER_ID, review.id, {"rating": None})
        assert service.get_user_review(CUSTOMER_ID, MUG).rating == 2

    def test_other_user_cannot_update_or_delete(self, service):
        review = service.create_review(CUSTOMER_ID, MUG, 2)

        with pytest.raises(NotFoundError):
            service.update_review(OTHER_CUSTOMER_ID, review.id, {"rating": 1})
        with pytest.raises(NotFoundError):
            service.delete_review(OTHER_CUSTOMER_ID, review.id)

    def test_delete_frees_the_slot(self, service):
        review = service.create_review(CUSTOMER_ID, MUG, 2)
        service.delete_review(CUSTOMER_ID, review.id)

        assert service.get_user_review(CUSTOMER_ID, MUG) is None
        assert service.create_review(CUSTOMER_ID, MUG, 5).rating == 5


class TestListing:
    def test_stats(self, service, db):
        service.create_review(CUSTOMER_ID, MUG, 5)
        service.create_review(OTHER_CUSTOMER_ID, MUG, 4)

        stats = service.get_stats(MUG)

        assert stats == {
            "average_rating": 4.5,
            "total_reviews": 2,
            "rating_distribution": {5: 1, 4: 1, 3: 0, 2: 0, 1: 0},
        }

    def test_stats_without_reviews(self, service):
        stats = service.get_stats(MUG)
        assert stats["average_rating"] == 0
        assert stats["total_reviews"] == 0

    def test_pagination_and_sorting(self, service):
        service.create_review(CUSTOMER_ID, MUG, 2)
        service.create_review(OTHER_CUSTOMER_ID, MUG, 5)

        page = service.get_product_reviews(MUG, sort_by="highest", page=1, limit=1)

        assert [r.rating for r in page["reviews"]] == [5]
        assert page["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}

        page = service.get_product_reviews(MUG, sort_by="lowest", page=2, limit=1)
        assert [r.rating for r in page["reviews"]] == [5]


class TestReviewApi:
    def test_create_list_and_delete(self, client):
        resp = client.post(
            f"/products/{MUG}/reviews",
            params={"user_id": CUSTOMER_ID},
            json={"rating": 5, "title": "Perfect gift", "comment": "Engraving was crisp"},
        )
        assert resp.status_code == 201
        review_id = resp.json()["id"]
        assert resp.json()["is_verified"] is False

        resp = client.get(f"/products/{MUG}/reviews")
        body = resp.json()
        assert body["stats"]["total_reviews"] == 1
        assert body["stats"]["rating_distribution"]["5"] == 1
        assert body["pagination"]["pages"] == 1

        resp = client.get(f"/products/{MUG}/reviews/mine", params={"user_id": CUSTOMER_ID})
        assert resp.json()["id"] == review_id

        resp = client.delete(f"/reviews/{review_id}", params={"user_id": OTHER_CUSTOMER_ID})
        assert resp.status_code == 404

        resp = client.delete(f"/reviews/{review_id}", params={"user_id": CUSTOMER_ID})
        assert resp.status_code == 204

    def test_duplicate_returns_409_and_bad_rating_400(self, client):
        client.post(f"/products/{MUG}/reviews", params={"user_id": CUSTOMER_ID}, json={"rating": 4})

        resp = client.post(f"/products/{MUG}/reviews", params={"user_id": CUSTOMER_ID}, json={"rating": 5})
        assert resp.status_code == 409

        resp = client.post(f"/products/{MUG}/reviews", params={"user_id": OTHER_CUSTOMER_ID}, json={"rating": 7})
        assert resp.status_code == 400
        assert resp.json()["field"] == "rating"

    def test_verified_after_delivered_order(self, client, db):
        place_order(db, CUSTOMER_ID, MUG, "delivered")

        resp = client.post(f"/products/{MUG}/reviews", params={"user_id": CUSTOMER_ID}, json={"rating": 5})

        assert resp.json()["is_verified"] is True

    def test_null_rating_patch_returns_400(self, client):
        resp = client.post(f"/products/{MUG}/reviews", params={"user_id": CUSTOMER_ID}, json={"rating": 4})
        review_id = resp.json()["id"]

        resp = client.patch(f"/reviews/{review_id}", params={"user_id": CUSTOMER_ID}, json={"rating": None, "title": "x"})

        assert resp.status_code == 400
        assert resp.json()["field"] == "rating"
        mine = client.get(f"/products/{MUG}/reviews/mine", params={"user_id": CUSTOMER_ID}).json()
        assert mine["rating"] == 4
        assert mine["title"] is None
