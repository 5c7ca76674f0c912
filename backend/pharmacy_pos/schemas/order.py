from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class OrderItemIn(BaseModel):
    drug_id: int
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    note: Optional[str] = None


class OrderCreate(BaseModel):
    """
    Checkout submission.

    With template_id set, total_price is the authoritative target and the
    per-item unit prices are recomputed server-side.
    """
    items: List[OrderItemIn]
    total_price: Decimal = Field(ge=0)
    customer_id: Optional[int] = None
    template_id: Optional[int] = None


class OrderItemResponse(BaseModel):
    id: int
    drug_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    note: Optional[str] = None
    template_id: Optional[int] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    user_id: int
    customer_id: Optional[int] = None
    template_id: Optional[int] = None
    total_price: Decimal
    status: str
    created_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class TodayStats(BaseModel):
    order_count: int
    revenue: Decimal
