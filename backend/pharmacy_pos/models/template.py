"""
Template ("combo"): a named set of drugs sold together.

total_price NULL  -> price is derived from the items
total_price set   -> manually overridden total for the whole combo
Soft-deleted via deleted_at; orders keep their own snapshot.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmacy_pos.db.base import Base


class Template(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    total_price = Column(Numeric(14, 2), nullable=True)
    image_url = Column(String(1024), nullable=True)
    note = Column(Text, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "TemplateItem",
        back_populates="template",
        order_by="TemplateItem.id",
        cascade="all, delete-orphan",
    )


class TemplateItem(Base):
    __tablename__ = "template_items"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    drug_id = Column(Integer, ForeignKey("drugs.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    custom_price = Column(Numeric(14, 2), nullable=True)  # overrides drug.unit_price inside this template only
    note = Column(Text, nullable=True)

    template = relationship("Template", back_populates="items")
    drug = relationship("Drug")
