from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from pharmacy_pos.db.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
