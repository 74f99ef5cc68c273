from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from dreamknot.data.database import Base

ORDER_STATUSES = ("pending", "processing", "in_production", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid")


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    total_amount = Column(Numeric(10, 2), nullable=False)
    discount_code = Column(String(64), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)

    shipping_address = Column(Text, nullable=False)
    billing_address = Column(Text, nullable=False)

    payment_status = Column(String(20), nullable=False, default="pending")
    order_status = Column(String(20), nullable=False, default="processing")

    razorpay_order_id = Column(String(64), nullable=True)
    razorpay_payment_id = Column(String(64), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
