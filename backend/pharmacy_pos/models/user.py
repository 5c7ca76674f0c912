from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from pharmacy_pos.db.base import Base


class User(Base):
    """Pharmacist account. Provisioned by the identity provider; id is the JWT subject."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
