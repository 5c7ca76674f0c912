"""Order history and daily figures for the pharmacist's dashboard."""
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from pharmacy_pos.core.config import settings
from pharmacy_pos.models.customer import Customer
from pharmacy_pos.models.drug import Drug
from pharmacy_pos.models.order import Order, OrderItem


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def list_orders(
    db: Session,
    user_id: int,
    customer_id: Optional[int] = None,
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[Order]:
    """
    Newest first. search matches customer name/phone or any drug name in the order.
    date_to is inclusive.
    """
    q = (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.customer))
        .filter(Order.user_id == user_id)
    )
    if customer_id is not None:
        q = q.filter(Order.customer_id == customer_id)
    if date_from:
        q = q.filter(Order.created_at >= _day_start(date_from))
    if date_to:
        q = q.filter(Order.created_at < _day_start(date_to + timedelta(days=1)))
    if search:
        pattern = f"%{search.strip()}%"
        drug_match = (
            db.query(OrderItem.order_id)
            .join(Drug, OrderItem.drug_id == Drug.id)
            .filter(Drug.name.ilike(pattern))
        )
        q = q.outerjoin(Customer, Order.customer_id == Customer.id).filter(
            or_(
                Customer.name.ilike(pattern),
                Customer.phone.ilike(pattern),
                Order.id.in_(drug_match),
            )
        )
    return (
        q.order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit or settings.HISTORY_PAGE_LIMIT)
        .all()
    )


def get_order(db: Session, user_id: int, order_id: int) -> Optional[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.id == order_id, Order.user_id == user_id)
        .first()
    )


def today_stats(db: Session, user_id: int, today: Optional[date] = None) -> dict:
    today = today or datetime.now(timezone.utc).date()
    start = _day_start(today)
    end = start + timedelta(days=1)
    order_count, revenue = (
        db.query(func.count(Order.id), func.sum(Order.total_price))
        .filter(Order.user_id == user_id, Order.created_at >= start, Order.created_at < end)
        .one()
    )
    return {"order_count": order_count or 0, "revenue": Decimal(str(revenue or 0))}
