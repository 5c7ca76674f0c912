"""
CheckoutSession - the saved basket of one pharmacist.

Written only through an explicit save after each basket mutation, so the
basket survives a failed submission and a server restart.
"""
from sqlalchemy import Column, Integer, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
from pharmacy_pos.db.base import Base


class CheckoutSession(Base):
    """
    Schema:
        user_id: owner of the basket (one basket per pharmacist)
        payload: BasketState.to_payload() - lines, customer_id, template_id
        updated_at: last save
    """
    __tablename__ = "checkout_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    payload = Column(JSON, nullable=True, default=dict)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<CheckoutSession user_id={self.user_id}>"
