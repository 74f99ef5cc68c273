from sqlalchemy import Column, Integer, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship

from dreamknot.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)

    customization_json = Column(Text, nullable=True)
    qty = Column(Integer, nullable=False)
    # line price (unit price * qty) at the moment the order was written
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
