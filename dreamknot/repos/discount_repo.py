# dreamknot/repos/discount_repo.py
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from dreamknot.data.models.discount_code import DiscountCodeModel


class DiscountRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_codes(self, active_only: bool = False) -> list[DiscountCodeModel]:
        stmt = select(DiscountCodeModel).order_by(DiscountCodeModel.created_at.desc(), DiscountCodeModel.id.desc())
        if active_only:
            stmt = stmt.where(DiscountCodeModel.is_active.is_(True))
        return list(self.db.execute(stmt).scalars())

    def get_code(self, code_id: int) -> DiscountCodeModel | None:
        return self.db.get(DiscountCodeModel, code_id)

    def get_by_code(self, code: str) -> DiscountCodeModel | None:
        return self.db.execute(
            select(DiscountCodeModel).where(DiscountCodeModel.code == code.upper())
        ).scalar_one_or_none()

    def add_code(self, discount: DiscountCodeModel) -> DiscountCodeModel:
        self.db.add(discount)
        self.db.flush()
        return discount

    def delete_code(self, discount: DiscountCodeModel) -> None:
        self.db.delete(discount)
        self.db.flush()

    def increment_usage_if_available(self, code: str) -> int:
        """
        Conditional increment, the database decides whether a use is left.
        UPDATE discount_codes SET usage_count = usage_count + 1
        WHERE code = :code AND is_active AND (usage_limit IS NULL OR usage_count < usage_limit)
        """
        result = self.db.execute(
            update(DiscountCodeModel)
            .where(
                DiscountCodeModel.code == code.upper(),
                DiscountCodeModel.is_active.is_(True),
                or_(
                    DiscountCodeModel.usage_limit.is_(None),
                    DiscountCodeModel.usage_count < DiscountCodeModel.usage_limit,
                ),
            )
            .values(usage_count=DiscountCodeModel.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
