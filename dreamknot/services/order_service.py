# dreamknot/services/order_service.py
import json
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from dreamknot.data.models.checkout_session import CheckoutSessionModel
from dreamknot.data.models.order import ORDER_STATUSES, OrderModel
from dreamknot.data.models.order_item import OrderItemModel
from dreamknot.domain.errors import ConflictError, NotFoundError, ValidationError
from dreamknot.repos.cart_repo import CartRepo
from dreamknot.repos.order_repo import OrderRepo
from dreamknot.services.cart_service import ZERO, subtotal, unit_prices
from dreamknot.services.catalog_client import CatalogClient, unavailable_product
from dreamknot.services.discount_service import DiscountService, apply_discount
from dreamknot.services.lock_service import LockService
from dreamknot.services.notification_service import NotificationService
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)


def _address_json(address: Any) -> str:
    if hasattr(address, "model_dump"):
        address = address.model_dump()
    return json.dumps(address)


def order_summary(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "total_amount": order.total_amount,
        "order_status": order.order_status,
        "payment_status": order.payment_status,
        "created_at": order.created_at,
    }


def snapshot_lines(items, prices: Dict[int, Decimal]) -> list[Dict[str, Any]]:
    """Cart lines with their unit price, in the shape a checkout session stores."""
    return [
        {
            "item_id": i.id,
            "product_id": i.product_id,
            "customization": i.customization,
            "qty": i.quantity,
            "unit_price": prices[i.product_id],
        }
        for i in items
    ]


class OrderService:
    """
    Turns a cart into an order and serves order reads and admin status
    changes.

    Orders are written under the cart lock. The order row, its items, the
    removal of the ordered cart lines and any discount reservation are
    committed together; emails go out only after the commit.
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogClient,
        notification_service: NotificationService | None = None,
        lock_service: LockService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.discounts = DiscountService(db)
        self.catalog = catalog
        self.notification_service = notification_service or NotificationService()
        self.lock_service = lock_service or LockService()

    def create_order(
        self,
        user_id: int,
        shipping_address: Any,
        billing_address: Any,
        discount_code: str | None = None,
    ) -> Dict[str, Any]:
        """Checkout without online payment, the order stays payment-pending."""
        with self.lock_service.cart_lock(user_id):
            cart, items = self._cart_items(user_id)
            prices = unit_prices(items, self.catalog.products_by_id())
            cart_subtotal = subtotal(items, prices)

            discount = ZERO
            if discount_code:
                check = self.discounts.validate(discount_code, cart_subtotal)
                if not check["valid"]:
                    raise ConflictError("Discount code is not valid for this order")
                discount = check["discount"]

            order = self._write_order(
                user_id,
                cart.id,
                snapshot_lines(items, prices),
                total=apply_discount(cart_subtotal, discount),
                discount_code=discount_code,
                discount=discount,
                shipping_address=shipping_address,
                billing_address=billing_address,
                reserve_discount=bool(discount_code),
            )

        self.notification_service.send_order_placed(order.id)
        return order_summary(order)

    def create_order_from_cart(
        self,
        user_id: int,
        shipping_address: Any,
        billing_address: Any,
        payment_refs: Dict[str, str] | None = None,
        discount_code: str | None = None,
        discount_amount: Decimal | None = None,
    ) -> Dict[str, Any]:
        """
        Use case: cart -> order, priced from the live catalog.

        1. rejects an empty cart
        2. total = max(0, subtotal - discount)
        3. order + one item per line (price = unit price * qty), the lines
           read are removed from the cart
        4. emails dispatched after commit
        """
        with self.lock_service.cart_lock(user_id):
            cart, items = self._cart_items(user_id)
            prices = unit_prices(items, self.catalog.products_by_id())
            discount = Decimal(discount_amount) if discount_amount else ZERO

            order = self._write_order(
                user_id,
                cart.id,
                snapshot_lines(items, prices),
                total=apply_discount(subtotal(items, prices), discount),
                discount_code=discount_code,
                discount=discount,
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment_refs=payment_refs,
            )

        self.notification_service.send_order_placed(order.id)
        return order_summary(order)

    def create_order_from_session(
        self,
        session: CheckoutSessionModel,
        shipping_address: Any,
        billing_address: Any,
        payment_refs: Dict[str, str],
    ) -> Dict[str, Any]:
        """
        Paid order from the lines priced when the gateway order was opened.

        The order holds exactly what was charged. Only the paid quantities
        leave the cart, anything added since stays for the next checkout.
        The session is marked consumed in the same commit.
        """
        lines = json.loads(session.lines)
        for line in lines:
            line["unit_price"] = Decimal(line["unit_price"])

        with self.lock_service.cart_lock(session.user_id):
            cart = self.cart_repo.get_cart_by_user(session.user_id)
            session.status = "consumed"
            order = self._write_order(
                session.user_id,
                cart.id if cart else None,
                lines,
                total=Decimal(session.total_amount),
                discount_code=session.discount_code,
                discount=Decimal(session.discount_amount),
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment_refs=payment_refs,
            )

        self.notification_service.send_order_placed(order.id)
        return order_summary(order)

    def _cart_items(self, user_id: int):
        cart = self.cart_repo.get_cart_by_user(user_id)
        items = self.cart_repo.get_cart_items(cart.id) if cart else []
        if not items:
            raise ConflictError("Cart is empty")
        return cart, items

    def _write_order(
        self,
        user_id: int,
        cart_id: int | None,
        lines: list[Dict[str, Any]],
        total: Decimal,
        discount_code: str | None,
        discount: Decimal,
        shipping_address: Any,
        billing_address: Any,
        payment_refs: Dict[str, str] | None = None,
        reserve_discount: bool = False,
    ) -> OrderModel:
        try:
            if reserve_discount and discount_code and not self.discounts.reserve(discount_code):
                raise ConflictError("Discount code usage limit reached")

            order = self.repo.add_order(
                OrderModel(
                    user_id=user_id,
                    total_amount=total,
                    discount_code=discount_code.upper() if discount_code else None,
                    discount_amount=discount,
                    shipping_address=_address_json(shipping_address),
                    billing_address=_address_json(billing_address),
                    payment_status="paid" if payment_refs else "pending",
                    order_status="processing",
                    razorpay_order_id=payment_refs["razorpay_order_id"] if payment_refs else None,
                    razorpay_payment_id=payment_refs["razorpay_payment_id"] if payment_refs else None,
                )
            )
            self.repo.add_order_items(
                [
                    OrderItemModel(
                        order_id=order.id,
                        product_id=line["product_id"],
                        customization_json=line["customization"],
                        qty=line["qty"],
                        price=line["unit_price"] * line["qty"],
                    )
                    for line in lines
                ]
            )
            if cart_id is not None:
                self._consume_cart_lines(cart_id, lines)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(
            f"Order {order.id} created for user {user_id}: "
            f"{len(lines)} lines, total {total}, payment {order.payment_status}"
        )
        return order

    def _consume_cart_lines(self, cart_id: int, lines: list[Dict[str, Any]]) -> None:
        for line in lines:
            item = self.cart_repo.get_cart_item(cart_id, line["item_id"])
            if item is None:
                continue
            if item.quantity > line["qty"]:
                item.quantity -= line["qty"]
            else:
                self.cart_repo.delete_cart_item(item)

    # queries
    def get_user_orders(self, user_id: int) -> list[Dict[str, Any]]:
        orders = self.repo.list_user_orders(user_id)
        products = self.catalog.products_by_id() if orders else {}
        return [self._detail(o, products) for o in orders]

    def get_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)
        if not order or order.user_id != user_id:
            raise NotFoundError("Order")
        return self._detail(order, self.catalog.products_by_id())

    def get_all_orders(self) -> list[Dict[str, Any]]:
        orders = self.repo.list_orders()
        products = self.catalog.products_by_id() if orders else {}
        return [self._detail(o, products) for o in orders]

    # admin commands
    def update_order_status(self, order_id: int, status: str) -> Dict[str, Any]:
        self._check_status(status)

        order = self.repo.update_order_status(order_id, status)
        if not order:
            raise NotFoundError("Order")

        logger.info(f"Order {order_id} status -> {status}")
        self.notification_service.send_status_changed(order_id, status)
        return order_summary(order)

    def bulk_update_status(self, order_ids: list[int], status: str) -> Dict[str, Any]:
        self._check_status(status)
        if not order_ids:
            raise ValidationError("Order IDs are required", field="order_ids")

        updated = self.repo.bulk_update_status(order_ids, status)
        logger.info(f"Bulk status update -> {status}: {updated} of {len(order_ids)} orders")

        for order in self.repo.list_by_ids(order_ids):
            self.notification_service.send_status_changed(order.id, status)

        return {"updated_count": updated, "status": status}

    @staticmethod
    def _check_status(status: str) -> None:
        if status not in ORDER_STATUSES:
            raise ValidationError("Invalid order status", field="order_status")

    @staticmethod
    def _detail(order: OrderModel, products: Dict[int, dict]) -> Dict[str, Any]:
        return {
            **order_summary(order),
            "user_id": order.user_id,
            "discount_code": order.discount_code,
            "discount_amount": order.discount_amount,
            "shipping_address": json.loads(order.shipping_address),
            "billing_address": json.loads(order.billing_address),
            "items": [
                {
                    "id": item.id,
                    "product": products.get(item.product_id) or unavailable_product(item.product_id),
                    "customization": item.customization_json,
                    "qty": item.qty,
                    # stored line price, not re-priced from the catalog
                    "price": item.price,
                }
                for item in order.items
            ],
        }
