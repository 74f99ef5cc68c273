from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from dreamknot.data.models.wishlist_item import WishlistItemModel


class WishlistRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_items(self, user_id: int) -> list[WishlistItemModel]:
        return list(
            self.db.execute(
                select(WishlistItemModel)
                .where(WishlistItemModel.user_id == user_id)
                .order_by(WishlistItemModel.id)
            ).scalars()
        )

    def get_item(self, user_id: int, product_id: int) -> WishlistItemModel | None:
        return self.db.execute(
            select(WishlistItemModel).where(
                WishlistItemModel.user_id == user_id,
                WishlistItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def add_item(self, item: WishlistItemModel) -> WishlistItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_item(self, item: WishlistItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_product(self, user_id: int, product_id: int) -> int:
        result = self.db.execute(
            delete(WishlistItemModel).where(
                WishlistItemModel.user_id == user_id,
                WishlistItemModel.product_id == product_id,
            )
        )
        return result.rowcount

    def clear(self, user_id: int) -> int:
        result = self.db.execute(
            delete(WishlistItemModel).where(WishlistItemModel.user_id == user_id)
        )
        return result.rowcount

    def count(self, user_id: int) -> int:
        return self.db.execute(
            select(func.count(WishlistItemModel.id)).where(WishlistItemModel.user_id == user_id)
        ).scalar_one()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
