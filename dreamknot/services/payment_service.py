# dreamknot/services/payment_service.py
import json
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from sqlalchemy.orm import Session

from dreamknot.data.models.checkout_session import CheckoutSessionModel
from dreamknot.domain.errors import ConflictError
from dreamknot.repos.cart_repo import CartRepo
from dreamknot.repos.checkout_repo import CheckoutRepo
from dreamknot.repos.order_repo import OrderRepo
from dreamknot.services.cart_service import ZERO, subtotal, unit_prices
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.discount_service import DiscountService, apply_discount
from dreamknot.services.order_service import OrderService, snapshot_lines
from dreamknot.services.payment_gateway import RazorpayClient
from dreamknot.utils.settings import PAYMENT_CURRENCY
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Rupees -> paise, rounded half-up."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    """
    Online checkout against the payment gateway.

    The cart is priced once, when the gateway order is created, and the
    figures are kept in a checkout session. Verification writes the order
    from that session, so the invoiced total is the charged total.
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogClient,
        gateway: RazorpayClient,
        order_service: OrderService,
    ):
        self.cart_repo = CartRepo(db)
        self.checkout_repo = CheckoutRepo(db)
        self.order_repo = OrderRepo(db)
        self.discounts = DiscountService(db)
        self.catalog = catalog
        self.gateway = gateway
        self.orders = order_service

    def create_payment_order(
        self,
        user_id: int,
        discount_code: str | None = None,
        discount_amount: Decimal | None = None,
    ) -> Dict[str, Any]:
        cart = self.cart_repo.get_cart_by_user(user_id)
        items = self.cart_repo.get_cart_items(cart.id) if cart else []
        if not items:
            raise ConflictError("Cart is empty")

        prices = unit_prices(items, self.catalog.products_by_id())
        cart_subtotal = subtotal(items, prices)

        try:
            if discount_code:
                # validated here and a use reserved before the customer pays
                discount = self.discounts.redeem(discount_code, cart_subtotal)
            else:
                discount = Decimal(discount_amount) if discount_amount else ZERO

            total = apply_discount(cart_subtotal, discount)
            amount_minor = to_minor_units(total)

            logger.info(
                f"Payment order for user {user_id}: subtotal {cart_subtotal}, "
                f"discount {discount}, total {total} ({amount_minor} minor units)"
            )

            gateway_order = self.gateway.create_order(
                amount=amount_minor,
                currency=PAYMENT_CURRENCY,
                receipt=f"order_{int(time.time() * 1000)}_{user_id}",
            )

            self.checkout_repo.add_session(
                CheckoutSessionModel(
                    user_id=user_id,
                    gateway_order_id=gateway_order["id"],
                    subtotal=cart_subtotal,
                    discount_code=discount_code.upper() if discount_code else None,
                    discount_amount=discount,
                    total_amount=total,
                    amount_minor=amount_minor,
                    currency=gateway_order.get("currency", PAYMENT_CURRENCY),
                    lines=json.dumps(snapshot_lines(items, prices), default=str),
                    status="open",
                )
            )
            self.checkout_repo.commit()
        except Exception:
            self.checkout_repo.rollback()
            raise

        return {
            "order_id": gateway_order["id"],
            "amount": gateway_order["amount"],
            "currency": gateway_order["currency"],
            "key": self.gateway.key_id,
        }

    def verify_and_create_order(
        self,
        user_id: int,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
        shipping_address: Any,
        billing_address: Any,
        discount_code: str | None = None,
        discount_amount: Decimal | None = None,
    ) -> Dict[str, Any]:
        # the signature is the only proof the callback came from the gateway
        if not self.gateway.verify_signature(gateway_order_id, gateway_payment_id, signature):
            logger.warning(f"Signature mismatch for gateway order {gateway_order_id}, user {user_id}")
            raise ConflictError("Payment verification failed")

        payment = self.gateway.fetch_payment(gateway_payment_id)
        if payment.get("status") != "captured":
            logger.warning(f"Payment {gateway_payment_id} is {payment.get('status')}, not captured")
            raise ConflictError("Payment not captured")

        if self.order_repo.get_by_payment_id(gateway_payment_id):
            raise ConflictError("Payment already processed")

        payment_refs = {
            "razorpay_order_id": gateway_order_id,
            "razorpay_payment_id": gateway_payment_id,
        }

        session = self.checkout_repo.get_by_gateway_order(gateway_order_id)
        if session is None:
            # no priced session for this gateway order: price live as before
            logger.warning(f"No checkout session for gateway order {gateway_order_id}, pricing from catalog")
            return self.orders.create_order_from_cart(
                user_id,
                shipping_address,
                billing_address,
                payment_refs=payment_refs,
                discount_code=discount_code,
                discount_amount=discount_amount,
            )

        if session.user_id != user_id:
            logger.warning(
                f"User {user_id} tried to verify gateway order {gateway_order_id} opened by user {session.user_id}"
            )
            raise ConflictError("Payment verification failed")

        if session.status != "open":
            raise ConflictError("Payment already processed")

        return self.orders.create_order_from_session(
            session,
            shipping_address,
            billing_address,
            payment_refs=payment_refs,
        )
