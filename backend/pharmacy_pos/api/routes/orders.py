"""Orders: checkout submission, history, today's figures, CSV export."""
from datetime import date
import csv
import io

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from pharmacy_pos.api.deps import get_db, get_current_user
from pharmacy_pos.core.audit import AuditLog
from pharmacy_pos.core.exceptions import BusinessError, CheckoutError
from pharmacy_pos.models.user import User
from pharmacy_pos.schemas.order import OrderCreate, OrderResponse, TodayStats
from pharmacy_pos.services import history_service, order_service

router = APIRouter()


@router.post("", response_model=OrderResponse)
def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Submit a sale.

    With template_id, total_price is kept and unit prices are re-derived
    server-side; the unit prices sent by the client are ignored.
    """
    try:
        return order_service.submit_order(db, current_user.id, data)
    except CheckoutError as e:
        raise BusinessError.submission_failed(e)


@router.get("", response_model=list[OrderResponse])
def list_orders(
    customer_id: int | None = Query(None),
    search: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Order history, newest first."""
    return history_service.list_orders(
        db,
        current_user.id,
        customer_id=customer_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/stats/today", response_model=TodayStats)
def get_today_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return history_service.today_stats(db, current_user.id)


@router.get("/export")
def export_orders_csv(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Export order lines as CSV file."""
    orders = history_service.list_orders(db, current_user.id)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Order", "Date", "Customer", "Template", "Drug", "Quantity", "Unit price", "Line total", "Order total"])
    for order in orders:
        for item in order.items:
            writer.writerow([
                order.id,
                order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else "",
                order.customer.name if order.customer else "",
                order.template_id or "",
                item.drug_id,
                item.quantity,
                item.unit_price,
                item.line_total,
                order.total_price,
            ])

    AuditLog.log_action("export", "order", None, current_user.id, changes={"orders": len(orders)})
    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=orders_{date.today()}.csv"}
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    order = history_service.get_order(db, current_user.id, order_id)
    if not order:
        raise BusinessError.not_found("Order", reason=f"order_id={order_id} user_id={current_user.id}")
    return order
