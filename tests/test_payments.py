"""Payment bridge: signatures, checkout sessions and verified order writes."""

import hashlib
import hmac
from decimal import Decimal
from unittest import mock

import pytest
import requests
from sqlalchemy import func, select

from conftest import ADDRESS, CUSTOMER_ID, OTHER_CUSTOMER_ID, money
from dreamknot.data.models import CheckoutSessionModel, DiscountCodeModel, OrderModel
from dreamknot.domain.errors import GatewayError
from dreamknot.services.payment_gateway import RazorpayClient, compute_signature
from dreamknot.services.payment_service import to_minor_units


def sign(order_id, payment_id, secret="s3cret"):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def add_to_cart(client, user_id, product_id, qty=1):
    resp = client.post("/cart/items", params={"user_id": user_id}, json={"product_id": product_id, "qty": qty})
    assert resp.status_code == 200


def open_payment(client, user_id=CUSTOMER_ID, **payload):
    resp = client.post("/orders/payment", params={"user_id": user_id}, json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


def verify(client, order_id, payment_id, user_id=CUSTOMER_ID, signature=None, **extra):
    body = {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature or sign(order_id, payment_id),
        "shipping_address": ADDRESS,
        "billing_address": ADDRESS,
        **extra,
    }
    return client.post("/orders/verify-payment", params={"user_id": user_id}, json=body)


def order_count(db):
    return db.execute(select(func.count()).select_from(OrderModel)).scalar_one()


class TestSignature:
    def test_matches_hmac_sha256_of_order_and_payment(self):
        expected = hmac.new(b"s3cret", b"order_1|pay_1", hashlib.sha256).hexdigest()
        assert compute_signature("s3cret", "order_1", "pay_1") == expected

    def test_verify_signature(self, gateway):
        assert gateway.verify_signature("order_1", "pay_1", sign("order_1", "pay_1"))
        assert not gateway.verify_signature("order_1", "pay_1", sign("order_1", "pay_2"))
        assert not gateway.verify_signature("order_1", "pay_1", sign("order_1", "pay_1", secret="other"))

    def test_non_ascii_signature_is_a_mismatch(self, gateway):
        assert not gateway.verify_signature("order_1", "pay_1", "\u00e9" * 64)


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount, expected",
        [("100.00", 10000), ("0.00", 0), ("19.995", 2000), ("45.005", 4501), ("1.234", 123)],
    )
    def test_rounds_half_up(self, amount, expected):
        assert to_minor_units(Decimal(amount)) == expected


class TestCreatePaymentOrder:
    def test_amount_in_minor_units_and_session_recorded(self, client, gateway, db):
        add_to_cart(client, CUSTOMER_ID, 1, qty=2)
        add_to_cart(client, CUSTOMER_ID, 2)

        payment = open_payment(client)

        assert payment == {"order_id": "order_1", "amount": 12500, "currency": "INR", "key": "rzp_test_key"}
        assert gateway.orders[0]["receipt"].endswith(f"_{CUSTOMER_ID}")
        session = db.execute(select(CheckoutSessionModel)).scalar_one()
        assert session.total_amount == money("125.00")
        assert session.status == "open"

    def test_client_discount_amount_is_applied(self, client):
        add_to_cart(client, CUSTOMER_ID, 1, qty=2)

        payment = open_payment(client, discount_amount="30.00")

        assert payment["amount"] == 7000

    def test_discount_code_is_priced_server_side(self, client, db):
        db.add(DiscountCodeModel(code="HALF", discount_type="percentage", discount_value=Decimal("50"),
                                 maximum_discount=Decimal("20"), usage_count=0, is_active=True))
        db.commit()
        add_to_cart(client, CUSTOMER_ID, 1, qty=2)

        payment = open_payment(client, discount_code="half", discount_amount="99.00")

        assert payment["amount"] == 8000

    def test_empty_cart_returns_409(self, client, gateway):
        resp = client.post("/orders/payment", params={"user_id": CUSTOMER_ID}, json={})

        assert resp.status_code == 409
        assert gateway.orders == []


class TestVerifyPayment:
    def test_valid_payment_creates_paid_order(self, client, db, notifications):
        add_to_cart(client, CUSTOMER_ID, 3)
        payment = open_payment(client)

        resp = verify(client, payment["order_id"], "pay_1")

        assert resp.status_code == 201
        body = resp.json()
        assert body["payment_status"] == "paid"
        assert body["order_status"] == "processing"
        assert money(body["total_amount"]) == money("120.00")
        order = db.get(OrderModel, body["id"])
        assert order.razorpay_payment_id == "pay_1"
        assert notifications.placed == [body["id"]]
        assert client.get("/cart/count", params={"user_id": CUSTOMER_ID}).json() == {"count": 0}

    def test_bad_signature_creates_nothing(self, client, db):
        add_to_cart(client, CUSTOMER_ID, 1)
        payment = open_payment(client)

        resp = verify(client, payment["order_id"], "pay_1", signature=sign(payment["order_id"], "pay_1", "wrong"))

        assert resp.status_code == 409
        assert resp.json()["detail"] == "Payment verification failed"
        assert order_count(db) == 0
        assert client.get("/cart/count", params={"user_id": CUSTOMER_ID}).json() == {"count": 1}

    def test_uncaptured_payment_is_rejected(self, client, gateway, db):
        add_to_cart(client, CUSTOMER_ID, 1)
        payment = open_payment(client)
        gateway.payment_status = "authorized"

        resp = verify(client, payment["order_id"], "pay_1")

        assert resp.status_code == 409
        assert order_count(db) == 0

    def test_invoice_matches_amount_charged_after_price_change(self, client, catalog, db):
        add_to_cart(client, CUSTOMER_ID, 1, qty=2)
        payment = open_payment(client)
        catalog.set_price(1, "75.00")

        resp = verify(client, payment["order_id"], "pay_1")

        assert money(resp.json()["total_amount"]) == money("100.00")
        detail = client.get(f"/orders/{resp.json()['id']}", params={"user_id": CUSTOMER_ID}).json()
        assert money(detail["items"][0]["price"]) == money("100.00")

    def test_client_discount_cannot_change_charged_total(self, client):
        add_to_cart(client, CUSTOMER_ID, 1, qty=2)
        payment = open_payment(client)

        resp = verify(client, payment["order_id"], "pay_1", discount_amount="100.00")

        assert money(resp.json()["total_amount"]) == money("100.00")

    def test_replayed_callback_is_rejected(self, client, db):
        add_to_cart(client, CUSTOMER_ID, 1)
        payment = open_payment(client)
        assert verify(client, payment["order_id"], "pay_1").status_code == 201

        add_to_cart(client, CUSTOMER_ID, 2)
        resp = verify(client, payment["order_id"], "pay_1")

        assert resp.status_code == 409
        assert order_count(db) == 1

    def test_consumed_session_is_not_reused_with_new_payment(self, client, db):
        add_to_cart(client, CUSTOMER_ID, 1)
        payment = open_payment(client)
        assert verify(client, payment["order_id"], "pay_1").status_code == 201

        add_to_cart(client, CUSTOMER_ID, 2)
        resp = verify(client, payment["order_id"], "pay_2")

        assert resp.status_code == 409
        assert order_count(db) == 1

    def test_unknown_gateway_order_prices_live(self, client):
        add_to_cart(client, CUSTOMER_ID, 2, qty=2)

        resp = verify(client, "order_external", "pay_9", discount_amount="10.00")

        assert resp.status_code == 201
        assert money(resp.json()["total_amount"]) == money("40.00")

    def test_non_ascii_signature_returns_409(self, client, db):
        add_to_cart(client, CUSTOMER_ID, 1)
        payment = open_payment(client)

        resp = verify(client, payment["order_id"], "pay_1", signature="\u00e9" * 64)

        assert resp.status_code == 409
        assert order_count(db) == 0

    def test_cart_changes_after_payment_stay_out_of_the_order(self, client, db):
        add_to_cart(client, CUSTOMER_ID, 1)
        payment = open_payment(client)
        assert payment["amount"] == 5000
        add_to_cart(client, CUSTOMER_ID, 1, qty=9)
        add_to_cart(client, CUSTOMER_ID, 3)

        resp = verify(client, payment["order_id"], "pay_1")

        assert resp.status_code == 201
        assert money(resp.json()["total_amount"]) == money("50.00")
        detail = client.get(f"/orders/{resp.json()['id']}", params={"user_id": CUSTOMER_ID}).json()
        assert [(i["product"]["id"], i["qty"], money(i["price"])) for i in detail["items"]] == [(1, 1, money("50.00"))]

        # only the paid quantity left the cart
        cart = client.get("/cart/", params={"user_id": CUSTOMER_ID}).json()
        assert [(i["product"]["id"], i["qty"]) for i in cart["items"]] == [(1, 9), (3, 1)]

    def test_paid_lines_removed_from_cart_still_make_the_order(self, client, db):
        add_to_cart(client, CUSTOMER_ID, 2, qty=2)
        payment = open_payment(client)
        client.delete("/cart/", params={"user_id": CUSTOMER_ID})

        resp = verify(client, payment["order_id"], "pay_1")

        assert resp.status_code == 201
        assert money(resp.json()["total_amount"]) == money("50.00")

    def test_callback_for_another_users_payment_is_rejected(self, client, db):
        add_to_cart(client, CUSTOMER_ID, 3)
        payment = open_payment(client)
        add_to_cart(client, OTHER_CUSTOMER_ID, 3, qty=5)

        resp = verify(client, payment["order_id"], "pay_1", user_id=OTHER_CUSTOMER_ID)

        assert resp.status_code == 409
        assert order_count(db) == 0
        assert client.get("/cart/count", params={"user_id": OTHER_CUSTOMER_ID}).json() == {"count": 1}

        # the owner can still complete the checkout
        resp = verify(client, payment["order_id"], "pay_1")
        assert resp.status_code == 201
        assert money(resp.json()["total_amount"]) == money("120.00")

    def test_last_code_use_goes_to_one_customer(self, client, db):
        db.add(DiscountCodeModel(code="SOLO", discount_type="fixed", discount_value=Decimal("10"),
                                 usage_limit=1, usage_count=0, is_active=True))
        db.commit()
        add_to_cart(client, CUSTOMER_ID, 1)
        add_to_cart(client, OTHER_CUSTOMER_ID, 1)

        first = client.post("/orders/payment", params={"user_id": CUSTOMER_ID}, json={"discount_code": "SOLO"})
        second = client.post("/orders/payment", params={"user_id": OTHER_CUSTOMER_ID}, json={"discount_code": "SOLO"})

        assert first.status_code == 200
        assert first.json()["amount"] == 4000
        assert second.status_code == 409


class TestRazorpayClient:
    def test_create_order_posts_with_basic_auth(self):
        client = RazorpayClient(key_id="rzp_key", key_secret="secret", base_url="https://gw.test/v1")
        response = mock.Mock(status_code=200)
        response.json.return_value = {"id": "order_9", "amount": 500, "currency": "INR"}

        with mock.patch("dreamknot.services.payment_gateway.requests.post", return_value=response) as post:
            order = client.create_order(500, "INR", "order_1_1")

        assert order["id"] == "order_9"
        args, kwargs = post.call_args
        assert args[0] == "https://gw.test/v1/orders"
        assert kwargs["auth"] == ("rzp_key", "secret")
        assert kwargs["json"] == {"amount": 500, "currency": "INR", "receipt": "order_1_1"}

    def test_unreachable_gateway_raises_gateway_error(self):
        client = RazorpayClient(key_id="rzp_key", key_secret="secret", base_url="https://gw.test/v1")

        with mock.patch(
            "dreamknot.services.payment_gateway.requests.post",
            side_effect=requests.ConnectionError("down"),
        ) as post:
            with pytest.raises(GatewayError):
                client.create_order(500, "INR", "order_1_1")

        # creating an order is not retried
        assert post.call_count == 1

    def test_fetch_payment_is_retried_then_raises(self):
        client = RazorpayClient(key_id="rzp_key", key_secret="secret", base_url="https://gw.test/v1")

        with mock.patch(
            "dreamknot.services.payment_gateway.requests.get",
            side_effect=requests.Timeout("slow"),
        ) as get:
            with pytest.raises(GatewayError):
                client.fetch_payment("pay_1")

        assert get.call_count == 3
        assert get.call_args.args[0] == "https://gw.test/v1/payments/pay_1"
