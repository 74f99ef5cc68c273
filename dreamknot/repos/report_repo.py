from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from dreamknot.data.models.address import AddressModel
from dreamknot.data.models.order import OrderModel
from dreamknot.data.models.order_item import OrderItemModel
from dreamknot.data.models.review import ReviewModel
from dreamknot.data.models.user import UserModel


def _window(start: datetime | None, end: datetime | None) -> list:
    # a window needs both bounds
    if start is None or end is None:
        return []
    return [OrderModel.created_at >= start, OrderModel.created_at <= end]


class ReportRepo:
    """Read-only aggregates over orders, reviews, addresses and users."""

    def __init__(self, db: Session):
        self.db = db

    # orders
    def count_orders(self, start=None, end=None) -> int:
        return self.db.execute(
            select(func.count(OrderModel.id)).where(*_window(start, end))
        ).scalar_one()

    def paid_revenue(self, start=None, end=None):
        return self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total_amount), 0)).where(
                OrderModel.payment_status == "paid", *_window(start, end)
            )
        ).scalar_one()

    def status_counts(self, start=None, end=None) -> list[tuple[str, int]]:
        rows = self.db.execute(
            select(OrderModel.order_status, func.count(OrderModel.id))
            .where(*_window(start, end))
            .group_by(OrderModel.order_status)
            .order_by(OrderModel.order_status)
        )
        return [(status, count) for status, count in rows]

    def recent_orders(self, start=None, end=None, limit: int = 10) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(*_window(start, end))
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .limit(limit)
            ).scalars()
        )

    def daily_paid_sales(self, start=None, end=None) -> list[tuple]:
        day = func.date(OrderModel.created_at)
        rows = self.db.execute(
            select(day, func.count(OrderModel.id), func.sum(OrderModel.total_amount))
            .where(OrderModel.payment_status == "paid", *_window(start, end))
            .group_by(day)
            .order_by(day.desc())
        )
        return [(str(d), count, revenue) for d, count, revenue in rows]

    def product_sales(self, start=None, end=None, limit: int | None = None) -> list[tuple]:
        """(product_id, units sold, order lines, revenue) by units sold."""
        units = func.sum(OrderItemModel.qty)
        stmt = (
            select(
                OrderItemModel.product_id,
                units,
                func.count(OrderItemModel.id),
                func.sum(OrderItemModel.price),
            )
            .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
            .where(*_window(start, end))
            .group_by(OrderItemModel.product_id)
            .order_by(units.desc(), OrderItemModel.product_id)
        )
        if limit:
            stmt = stmt.limit(limit)
        return [tuple(row) for row in self.db.execute(stmt)]

    def product_ratings(self) -> dict[int, tuple[int, int]]:
        """product_id -> (review count, rating sum)."""
        rows = self.db.execute(
            select(ReviewModel.product_id, func.count(ReviewModel.id), func.sum(ReviewModel.rating))
            .group_by(ReviewModel.product_id)
        )
        return {pid: (count, total) for pid, count, total in rows}

    # customers
    def count_users(self, role: str | None = None, search: str | None = None) -> int:
        return self.db.execute(
            select(func.count(UserModel.id)).where(*self._user_filters(role, search))
        ).scalar_one()

    def list_users(
        self,
        role: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[UserModel]:
        stmt = (
            select(UserModel)
            .where(*self._user_filters(role, search))
            .order_by(UserModel.created_at.desc(), UserModel.id.desc())
            .offset(offset)
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars())

    def order_totals(self, user_ids: list[int], start=None, end=None) -> dict[int, tuple]:
        """user_id -> (order count, amount spent, last order time)."""
        rows = self.db.execute(
            select(
                OrderModel.user_id,
                func.count(OrderModel.id),
                func.sum(OrderModel.total_amount),
                func.max(OrderModel.created_at),
            )
            .where(OrderModel.user_id.in_(user_ids), *_window(start, end))
            .group_by(OrderModel.user_id)
        )
        return {uid: (count, spent, last) for uid, count, spent, last in rows}

    def review_counts(self, user_ids: list[int]) -> dict[int, int]:
        return self._count_by_user(ReviewModel, user_ids)

    def address_counts(self, user_ids: list[int]) -> dict[int, int]:
        return self._count_by_user(AddressModel, user_ids)

    def _count_by_user(self, model, user_ids: list[int]) -> dict[int, int]:
        rows = self.db.execute(
            select(model.user_id, func.count(model.id))
            .where(model.user_id.in_(user_ids))
            .group_by(model.user_id)
        )
        return {uid: count for uid, count in rows}

    @staticmethod
    def _user_filters(role: str | None, search: str | None) -> list:
        filters = []
        if role:
            filters.append(UserModel.role == role)
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    UserModel.name.ilike(pattern),
                    UserModel.email.ilike(pattern),
                    UserModel.phone.ilike(pattern),
                )
            )
        return filters
