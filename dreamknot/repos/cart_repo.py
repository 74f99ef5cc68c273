# dreamknot/repos/cart_repo.py
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from dreamknot.data.models.cart import CartModel
from dreamknot.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def create_cart(self, user_id: int) -> CartModel:
        cart = CartModel(user_id=user_id)
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_items(self, cart_id: int) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def get_cart_item(self, cart_id: int, item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
            )
        ).scalar_one_or_none()

    def find_matching_item(
        self, cart_id: int, product_id: int, customization: str | None
    ) -> CartItemModel | None:
        stmt = select(CartItemModel).where(
            CartItemModel.cart_id == cart_id,
            CartItemModel.product_id == product_id,
        )
        if customization is None:
            stmt = stmt.where(CartItemModel.customization.is_(None))
        else:
            stmt = stmt.where(CartItemModel.customization == customization)
        return self.db.execute(stmt.limit(1)).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def clear_cart_items(self, cart_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(CartItemModel.cart_id == cart_id)
        )
        return result.rowcount

    def count_cart_items(self, cart_id: int) -> int:
        return self.db.execute(
            select(func.count(CartItemModel.id)).where(CartItemModel.cart_id == cart_id)
        ).scalar_one()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
