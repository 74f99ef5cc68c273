# dreamknot/services/discount_service.py
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from sqlalchemy.orm import Session

from dreamknot.data.models.discount_code import DiscountCodeModel
from dreamknot.domain.errors import ConflictError, NotFoundError, ValidationError
from dreamknot.repos.discount_repo import DiscountRepo
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

# columns an update may change but never clear
REQUIRED_FIELDS = ("discount_type", "discount_value", "is_active")


def _aware(value: datetime | None) -> datetime | None:
    # some backends hand timestamps back naive; they are stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_discount(discount: DiscountCodeModel, order_total: Decimal, now: datetime | None = None) -> Decimal | None:
    """
    Discount granted by a code on an order total, or None when the code does
    not apply. Fixed discounts are not clamped to the total; callers floor
    the final amount at zero.
    """
    now = now or datetime.now(timezone.utc)

    if not discount.is_active:
        return None
    if discount.valid_from and now < _aware(discount.valid_from):
        return None
    if discount.valid_until and now > _aware(discount.valid_until):
        return None
    if discount.minimum_order is not None and order_total < discount.minimum_order:
        return None
    if discount.usage_limit is not None and discount.usage_count >= discount.usage_limit:
        return None

    value = Decimal(discount.discount_value)
    if discount.discount_type == "percentage":
        amount = order_total * value / 100
        if discount.maximum_discount is not None and amount > discount.maximum_discount:
            amount = Decimal(discount.maximum_discount)
    elif discount.discount_type == "fixed":
        amount = value
    else:
        return None

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def apply_discount(subtotal: Decimal, discount: Decimal | None) -> Decimal:
    return max(ZERO, subtotal - (discount or ZERO))


class DiscountService:
    def __init__(self, db: Session):
        self.repo = DiscountRepo(db)

    def validate(self, code: str, order_total: Decimal) -> Dict[str, Any]:
        """Read-only check; usage is reserved separately by reserve()."""
        discount = self.repo.get_by_code(code)
        if not discount:
            return {"valid": False, "discount": ZERO}

        amount = compute_discount(discount, Decimal(order_total))
        if amount is None:
            return {"valid": False, "discount": ZERO}
        return {"valid": True, "discount": amount}

    def reserve(self, code: str) -> bool:
        """
        Take one use of the code in a single conditional UPDATE. Does not
        commit, the caller's transaction decides whether the use sticks.
        """
        reserved = self.repo.increment_usage_if_available(code) == 1
        if not reserved:
            logger.info(f"Discount code {code.upper()} has no uses left")
        return reserved

    def redeem(self, code: str, order_total: Decimal) -> Decimal:
        """Validate and reserve in one go, raising when the code cannot be used."""
        result = self.validate(code, order_total)
        if not result["valid"]:
            raise ConflictError("Discount code is not valid for this order")
        if not self.reserve(code):
            raise ConflictError("Discount code usage limit reached")
        logger.info(f"Discount code {code.upper()} redeemed for {result['discount']}")
        return result["discount"]

    # admin
    def list_codes(self, active_only: bool = False) -> list[DiscountCodeModel]:
        return self.repo.list_codes(active_only)

    def get_code(self, code_id: int) -> DiscountCodeModel:
        discount = self.repo.get_code(code_id)
        if not discount:
            raise NotFoundError("Discount code")
        return discount

    def create_code(self, data: Dict[str, Any]) -> DiscountCodeModel:
        code = data["code"].strip().upper()
        if self.repo.get_by_code(code):
            raise ConflictError("Discount code already exists")

        self._check_window(data.get("valid_from"), data.get("valid_until"))

        discount = DiscountCodeModel(
            code=code,
            description=data.get("description"),
            discount_type=data["discount_type"],
            discount_value=data["discount_value"],
            minimum_order=data.get("minimum_order"),
            maximum_discount=data.get("maximum_discount"),
            usage_limit=data.get("usage_limit"),
            usage_count=0,
            is_active=True,
            valid_from=data.get("valid_from"),
            valid_until=data.get("valid_until"),
        )
        self.repo.add_code(discount)
        self.repo.commit()
        logger.info(f"Discount code {code} created")
        return discount

    def update_code(self, code_id: int, data: Dict[str, Any]) -> DiscountCodeModel:
        discount = self.get_code(code_id)
        for field in REQUIRED_FIELDS:
            if field in data and data[field] is None:
                raise ValidationError(f"{field} cannot be null", field=field)
        self._check_window(
            data.get("valid_from", discount.valid_from),
            data.get("valid_until", discount.valid_until),
        )

        for field, value in data.items():
            setattr(discount, field, value)
        self.repo.commit()
        logger.info(f"Discount code {discount.code} updated: {sorted(data)}")
        return discount

    def delete_code(self, code_id: int) -> None:
        discount = self.get_code(code_id)
        self.repo.delete_code(discount)
        self.repo.commit()
        logger.info(f"Discount code {discount.code} deleted")

    def toggle_code(self, code_id: int) -> DiscountCodeModel:
        discount = self.get_code(code_id)
        return self.update_code(code_id, {"is_active": not discount.is_active})

    @staticmethod
    def _check_window(valid_from: datetime | None, valid_until: datetime | None) -> None:
        if valid_from and valid_until and _aware(valid_until) < _aware(valid_from):
            raise ValidationError("valid_until must not be before valid_from", field="valid_until")
