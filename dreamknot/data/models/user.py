from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from dreamknot.data.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    phone = Column(String(20), nullable=True)
    role = Column(String, nullable=False, default="customer")  # customer, staff, admin
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
