# dreamknot/data/seed.py
from decimal import Decimal

from dreamknot.data.database import SessionLocal
from dreamknot.data.models import DiscountCodeModel, UserModel
from dreamknot.utils.settings import ADMIN_EMAIL


def seed(db=None):
    """Dev data: one admin account and a welcome code. Skipped when users exist."""
    own_session = db is None
    db = db or SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(UserModel).first():
            return
        db.add(UserModel(id=1, name="Store Admin", email=ADMIN_EMAIL, role="admin"))
        db.add(
            DiscountCodeModel(
                code="WELCOME10",
                description="10% off the first order, up to 200",
                discount_type="percentage",
                discount_value=Decimal("10"),
                maximum_discount=Decimal("200"),
                usage_count=0,
                is_active=True,
            )
        )
        db.commit()
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    from dreamknot.data.database import init_db

    init_db()
    seed()
