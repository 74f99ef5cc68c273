# dreamknot/services/report_service.py
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from dreamknot.repos.report_repo import ReportRepo
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.order_service import order_summary
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENT)


class ReportService:
    """
    Admin reports and the customer directory.

    Report windows apply only when both start and end are given. Revenue
    counts paid orders; product figures come from stored order lines, so
    they reflect what was actually charged.
    """

    def __init__(self, db: Session, catalog: CatalogClient):
        self.repo = ReportRepo(db)
        self.catalog = catalog

    def overview(self, start: datetime | None = None, end: datetime | None = None) -> Dict[str, Any]:
        return {
            "summary": {
                "total_orders": self.repo.count_orders(start, end),
                "total_revenue": _money(self.repo.paid_revenue(start, end)),
                "total_customers": self.repo.count_users(role="customer"),
            },
            "order_status_breakdown": [
                {"status": status, "count": count} for status, count in self.repo.status_counts(start, end)
            ],
            "recent_orders": [order_summary(o) for o in self.repo.recent_orders(start, end)],
        }

    def sales(self, start: datetime | None = None, end: datetime | None = None) -> Dict[str, Any]:
        daily = [
            {
                "date": day,
                "orders_count": count,
                "revenue": _money(revenue),
                "avg_order_value": _money(Decimal(revenue or 0) / count) if count else ZERO,
            }
            for day, count, revenue in self.repo.daily_paid_sales(start, end)
        ]

        sales = self.repo.product_sales(start, end, limit=10)
        products = self.catalog.products_by_id() if sales else {}
        top = [
            {
                "product_id": pid,
                "product_name": products[pid]["title"] if pid in products else "Unknown",
                "total_sold": units or 0,
                "order_count": lines,
                "revenue": _money(revenue),
            }
            for pid, units, lines, revenue in sales
        ]
        return {"daily_sales": daily, "top_products": top}

    def products(self, start: datetime | None = None, end: datetime | None = None) -> Dict[str, Any]:
        sales = {pid: (units, revenue) for pid, units, _lines, revenue in self.repo.product_sales(start, end)}
        ratings = self.repo.product_ratings()

        rows = []
        for product in self.catalog.all_products():
            units, revenue = sales.get(product["id"], (0, ZERO))
            review_count, rating_sum = ratings.get(product["id"], (0, 0))
            rows.append(
                {
                    "id": product["id"],
                    "title": product["title"],
                    "category": product["category"]["name"] if product["category"] else None,
                    "base_price": product["price"],
                    "total_sold": units or 0,
                    "total_revenue": _money(revenue),
                    "review_count": review_count,
                    "average_rating": round(rating_sum / review_count, 2) if review_count else 0.0,
                }
            )
        return {"products": rows}

    def customers(self, start: datetime | None = None, end: datetime | None = None) -> Dict[str, Any]:
        users = self.repo.list_users(role="customer")
        return {"customers": self._customer_rows(users, start, end)}

    def list_customers(
        self,
        page: int = 1,
        limit: int = 20,
        search: str | None = None,
        role: str | None = None,
    ) -> Dict[str, Any]:
        total = self.repo.count_users(role=role, search=search)
        users = self.repo.list_users(role=role, search=search, offset=(page - 1) * limit, limit=limit)
        return {
            "customers": self._customer_rows(users),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }

    def _customer_rows(self, users, start=None, end=None) -> list[Dict[str, Any]]:
        if not users:
            return []
        ids = [u.id for u in users]
        orders = self.repo.order_totals(ids, start, end)
        reviews = self.repo.review_counts(ids)
        addresses = self.repo.address_counts(ids)

        rows = []
        for user in users:
            count, spent, last = orders.get(user.id, (0, ZERO, None))
            rows.append(
                {
                    "id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "phone": user.phone,
                    "role": user.role,
                    "created_at": user.created_at,
                    "order_count": count,
                    "review_count": reviews.get(user.id, 0),
                    "address_count": addresses.get(user.id, 0),
                    "total_spent": _money(spent),
                    "last_order_date": last,
                }
            )
        return rows
