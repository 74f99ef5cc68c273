from sqlalchemy import Column, Integer, ForeignKey, Text
from sqlalchemy.orm import relationship

from dreamknot.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)

    # serialized customization json, compared verbatim when merging lines
    customization = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False)

    cart = relationship("CartModel", back_populates="items")
