from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from dreamknot.data.database import Base


class CheckoutSessionModel(Base):
    """
    Cart lines and figures priced when the gateway order is created.
    Verification writes the order from them, so the order holds exactly
    what the customer was charged for.
    """

    __tablename__ = "checkout_sessions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    gateway_order_id = Column(String(64), nullable=False, unique=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    discount_code = Column(String(64), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    amount_minor = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)

    # [{"item_id", "product_id", "customization", "qty", "unit_price"}]
    lines = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default="open")  # open, consumed
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
