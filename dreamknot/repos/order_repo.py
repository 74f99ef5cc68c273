# dreamknot/repos/order_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from dreamknot.data.models.order import OrderModel
from dreamknot.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_order_items(self, items: list[OrderItemModel]) -> None:
        self.db.add_all(items)
        self.db.flush()

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
        ).scalar_one_or_none()

    def get_by_payment_id(self, payment_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.razorpay_payment_id == payment_id)
        ).scalar_one_or_none()

    def list_user_orders(self, user_id: int) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_orders(self) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_by_ids(self, order_ids: list[int]) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).where(OrderModel.id.in_(order_ids)).order_by(OrderModel.id)
            ).scalars()
        )

    def update_order_status(self, order_id: int, status: str) -> OrderModel | None:
        order = self.get_order(order_id)
        if order:
            order.order_status = status
            self.db.commit()
            self.db.refresh(order)
        return order

    def bulk_update_status(self, order_ids: list[int], status: str) -> int:
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id.in_(order_ids))
            .values(order_status=status)
            .execution_options(synchronize_session="evaluate")
        )
        self.db.commit()
        return result.rowcount

    def has_fulfilled_purchase(self, user_id: int, product_id: int, statuses: tuple[str, ...]) -> bool:
        # paid order in one of the given statuses containing the product
        row = self.db.execute(
            select(OrderItemModel.id)
            .join(OrderModel, OrderItemModel.order_id == OrderModel.id)
            .where(
                OrderModel.user_id == user_id,
                OrderModel.payment_status == "paid",
                OrderModel.order_status.in_(statuses),
                OrderItemModel.product_id == product_id,
            )
            .limit(1)
        ).first()
        return row is not None

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
