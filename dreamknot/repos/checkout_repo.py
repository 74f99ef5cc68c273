from sqlalchemy import select
from sqlalchemy.orm import Session

from dreamknot.data.models.checkout_session import CheckoutSessionModel


class CheckoutRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_session(self, session: CheckoutSessionModel) -> CheckoutSessionModel:
        self.db.add(session)
        self.db.flush()
        return session

    def get_by_gateway_order(self, gateway_order_id: str) -> CheckoutSessionModel | None:
        return self.db.execute(
            select(CheckoutSessionModel).where(
                CheckoutSessionModel.gateway_order_id == gateway_order_id
            )
        ).scalar_one_or_none()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
