# dreamknot/services/cart_service.py
import json
from decimal import Decimal
from typing import Any, Dict, Iterable

from sqlalchemy.orm import Session

from dreamknot.data.models.cart_item import CartItemModel
from dreamknot.domain.errors import NotFoundError, ValidationError
from dreamknot.repos.cart_repo import CartRepo
from dreamknot.services.catalog_client import CatalogClient, unavailable_product
from dreamknot.services.lock_service import LockService
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0.00")


def serialize_customization(customization: Dict[str, Any] | None) -> str | None:
    # sorted keys so the same customization always matches the same line
    if not customization:
        return None
    return json.dumps(customization, sort_keys=True, separators=(",", ":"))


def unit_prices(items: Iterable[CartItemModel], products: Dict[int, dict]) -> Dict[int, Decimal]:
    """Live unit price per product in the cart; unknown products price at zero."""
    return {
        i.product_id: products[i.product_id]["price"] if i.product_id in products else ZERO
        for i in items
    }


def subtotal(items: Iterable[CartItemModel], prices: Dict[int, Decimal]) -> Decimal:
    return sum((prices.get(i.product_id, ZERO) * i.quantity for i in items), ZERO)


class CartService:
    """
    Per-user cart.

    commands (add, update, remove, clear) run under a per-user lock,
    queries (get, count) only read. Prices are never stored on cart lines,
    every read joins against the live catalog.
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogClient,
        lock_service: LockService,
    ):
        self.repo = CartRepo(db)
        self.catalog = catalog
        self.lock_service = lock_service

    # query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)

        if not cart:
            return {"id": None, "items": [], "total": ZERO}

        items = self.repo.get_cart_items(cart.id)
        products = self.catalog.products_by_id() if items else {}

        lines = []
        for i in items:
            product = products.get(i.product_id) or unavailable_product(i.product_id)
            lines.append(
                {
                    "id": i.id,
                    "product": product,
                    "customization": i.customization,
                    "qty": i.quantity,
                    "price": product["price"] * i.quantity,
                }
            )

        return {
            "id": cart.id,
            "items": lines,
            "total": sum((line["price"] for line in lines), ZERO),
        }

    def item_count(self, user_id: int) -> int:
        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            return 0
        return self.repo.count_cart_items(cart.id)

    # commands
    def add_item(
        self,
        user_id: int,
        product_id: int,
        customization: Dict[str, Any] | None = None,
        qty: int = 1,
    ) -> Dict[str, Any]:
        if qty < 1:
            raise ValidationError("Quantity must be at least 1", field="qty")

        serialized = serialize_customization(customization)

        with self.lock_service.cart_lock(user_id):
            try:
                cart = self.repo.get_cart_by_user(user_id)
                if not cart:
                    cart = self.repo.create_cart(user_id)
                    logger.info(f"Created cart {cart.id} for user {user_id}")

                existing = self.repo.find_matching_item(cart.id, product_id, serialized)
                if existing:
                    logger.info(
                        f"Product {product_id} already in cart {cart.id}, quantity "
                        f"{existing.quantity} -> {existing.quantity + qty}"
                    )
                    existing.quantity += qty
                else:
                    logger.info(f"Adding product {product_id} to cart {cart.id}")
                    self.repo.add_cart_item(
                        CartItemModel(
                            cart_id=cart.id,
                            product_id=product_id,
                            customization=serialized,
                            quantity=qty,
                        )
                    )
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        return self.get_cart(user_id)

    def update_item(self, user_id: int, item_id: int, qty: int) -> Dict[str, Any]:
        with self.lock_service.cart_lock(user_id):
            item = self._owned_item(user_id, item_id)

            try:
                if qty <= 0:
                    # zero or negative quantity means remove, not an error
                    logger.info(f"Quantity {qty} for cart item {item_id}, removing line")
                    self.repo.delete_cart_item(item)
                else:
                    item.quantity = qty
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        return self.get_cart(user_id)

    def remove_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        with self.lock_service.cart_lock(user_id):
            item = self._owned_item(user_id, item_id)
            logger.info(f"Removing cart item {item_id} for user {user_id}")
            try:
                self.repo.delete_cart_item(item)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        return self.get_cart(user_id)

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        with self.lock_service.cart_lock(user_id):
            cart = self.repo.get_cart_by_user(user_id)
            if cart:
                try:
                    removed = self.repo.clear_cart_items(cart.id)
                    self.repo.commit()
                except Exception:
                    self.repo.rollback()
                    raise
                logger.info(f"Cleared {removed} lines from cart {cart.id}")

        return self.get_cart(user_id)

    def _owned_item(self, user_id: int, item_id: int) -> CartItemModel:
        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            raise NotFoundError("Cart")

        item = self.repo.get_cart_item(cart.id, item_id)
        if not item:
            raise NotFoundError("Cart item")
        return item
