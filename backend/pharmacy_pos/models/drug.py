from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmacy_pos.db.base import Base


class DrugGroup(Base):
    __tablename__ = "drug_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Drug(Base):
    """Reference data. Only drug management (external) mutates it."""
    __tablename__ = "drugs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    unit = Column(String(64), nullable=False)  # display unit: tablet, blister, box...
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    group_id = Column(Integer, ForeignKey("drug_groups.id", ondelete="SET NULL"), nullable=True)
    image_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("DrugGroup", backref="drugs")
