"""
Order submission: price the lines, then write header and items.

    [Start] -> price lines -> [PricedLines] -> insert header -> [OrderCreated]
            -> insert items -> [Committed]

Orders that carry a template_id are re-priced here: the submitted total is
the target and the client's unit prices are discarded. Everything else is
written verbatim.

Write modes (settings.ORDER_WRITE_MODE):
    atomic      header and items share one transaction, any failure rolls
                both back
    sequential  header is committed before items are written; an item
                failure leaves the header behind with no items
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from pharmacy_pos.core.audit import AuditLog
from pharmacy_pos.core.config import settings
from pharmacy_pos.core.exceptions import CheckoutValidationError, OrderPersistenceError
from pharmacy_pos.models.order import Order, OrderItem
from pharmacy_pos.schemas.basket import DrugLine, TemplateLine
from pharmacy_pos.schemas.order import OrderCreate
from pharmacy_pos.services.basket import BasketState
from pharmacy_pos.services.price_distribution import PricedLine, distribute_total
from pharmacy_pos.services.template_service import expand_template, get_customer, get_drugs_by_ids

logger = logging.getLogger(__name__)

ATOMIC = "atomic"
SEQUENTIAL = "sequential"
ORDER_STATUS_COMPLETED = "completed"


@dataclass
class OrderHeader:
    user_id: int
    total_price: Decimal
    customer_id: Optional[int] = None
    template_id: Optional[int] = None
    status: str = ORDER_STATUS_COMPLETED


@dataclass
class OrderRow:
    drug_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    note: Optional[str] = None
    template_id: Optional[int] = None


@dataclass
class _PendingLine:
    drug_id: int
    quantity: int
    weight: Decimal
    note: Optional[str] = None


class SqlOrderRepository:
    """Writes order rows through the session. Transaction control stays with the caller."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, header: OrderHeader) -> Order:
        order = Order(
            user_id=header.user_id,
            customer_id=header.customer_id,
            template_id=header.template_id,
            total_price=header.total_price,
            status=header.status,
        )
        self.db.add(order)
        self.db.flush()
        return order

    def create_order_items(self, order_id: int, rows: Sequence[OrderRow]) -> List[OrderItem]:
        items = [
            OrderItem(
                order_id=order_id,
                drug_id=row.drug_id,
                quantity=row.quantity,
                unit_price=row.unit_price,
                line_total=row.line_total,
                note=row.note,
                template_id=row.template_id,
            )
            for row in rows
        ]
        self.db.add_all(items)
        self.db.flush()
        return items


# ============================================================================
# PRICING
# ============================================================================

def _distributed_rows(lines: List[_PendingLine], manual_total: Decimal, template_id: int) -> List[OrderRow]:
    try:
        allocations = distribute_total(
            [PricedLine(quantity=line.quantity, standard_price=line.weight) for line in lines],
            manual_total,
        )
    except ValueError as e:
        # Bad catalog data, e.g. a negative custom_price on a template item
        raise CheckoutValidationError(f"Cannot price template {template_id}: {e}") from e
    return [
        OrderRow(
            drug_id=line.drug_id,
            quantity=line.quantity,
            unit_price=allocation.unit_price,
            line_total=allocation.line_total,
            note=line.note,
            template_id=template_id,
        )
        for line, allocation in zip(lines, allocations)
    ]


def _template_weights(db: Session, template_id: int, drug_ids: Sequence[int]) -> Dict[int, Decimal]:
    """Standard price per drug: template price first, drug base price for drugs outside it."""
    weights: Dict[int, Decimal] = {}
    for expanded in expand_template(db, template_id):
        weights.setdefault(expanded.drug_id, expanded.standard_price)
    drugs = get_drugs_by_ids(db, drug_ids)
    for drug_id in drug_ids:
        if drug_id not in weights:
            weights[drug_id] = Decimal(drugs[drug_id].unit_price or 0)
    return weights


def price_template_lines(db: Session, template_id: int, lines: List[_PendingLine], manual_total: Decimal) -> List[OrderRow]:
    weights = _template_weights(db, template_id, [line.drug_id for line in lines])
    for line in lines:
        line.weight = weights[line.drug_id]
    return _distributed_rows(lines, manual_total, template_id)


def expand_template_line(db: Session, line: TemplateLine) -> List[OrderRow]:
    """Flatten one combo line into drug rows sharing price * quantity."""
    pending = [
        _PendingLine(drug_id=item.drug_id, quantity=item.quantity * line.quantity, weight=item.standard_price)
        for item in expand_template(db, line.template_id)
    ]
    if not pending:
        raise CheckoutValidationError(f"Template {line.template_id} has no items")
    return _distributed_rows(pending, line.price * line.quantity, line.template_id)


def price_order(db: Session, request: OrderCreate) -> List[OrderRow]:
    if not request.items:
        raise CheckoutValidationError("Order has no items")

    drug_ids = [item.drug_id for item in request.items]
    if request.template_id is not None:
        pending = [
            _PendingLine(drug_id=item.drug_id, quantity=item.quantity, weight=Decimal("0"), note=item.note)
            for item in request.items
        ]
        return price_template_lines(db, request.template_id, pending, request.total_price)

    get_drugs_by_ids(db, drug_ids)
    rows = [
        OrderRow(
            drug_id=item.drug_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.unit_price * item.quantity,
            note=item.note,
        )
        for item in request.items
    ]
    items_total = sum((row.line_total for row in rows), Decimal("0"))
    if items_total != request.total_price:
        raise CheckoutValidationError(
            f"total_price {request.total_price} does not match the items ({items_total})"
        )
    return rows


def price_basket(db: Session, basket: BasketState) -> List[OrderRow]:
    if not basket.lines:
        raise CheckoutValidationError("Basket is empty")

    drug_lines = [line for line in basket.lines if isinstance(line, DrugLine)]
    rows: List[OrderRow] = []
    if drug_lines:
        if basket.template_id is not None:
            pending = [
                _PendingLine(drug_id=line.drug_id, quantity=line.quantity, weight=Decimal("0"), note=line.note)
                for line in drug_lines
            ]
            manual_total = sum((line.price * line.quantity for line in drug_lines), Decimal("0"))
            rows.extend(price_template_lines(db, basket.template_id, pending, manual_total))
        else:
            get_drugs_by_ids(db, [line.drug_id for line in drug_lines])
            rows.extend(
                OrderRow(
                    drug_id=line.drug_id,
                    quantity=line.quantity,
                    unit_price=line.price,
                    line_total=line.price * line.quantity,
                    note=line.note,
                )
                for line in drug_lines
            )

    for line in basket.lines:
        if isinstance(line, TemplateLine):
            rows.extend(expand_template_line(db, line))
    return rows


# ============================================================================
# PERSISTENCE
# ============================================================================

def write_order(db: Session, header: OrderHeader, rows: Sequence[OrderRow], repository=None,
                mode: Optional[str] = None) -> Order:
    """
    Insert header then items. No retries.

    The repository is treated as a fallible remote collaborator: any error it
    raises, database or not, ends up as an OrderPersistenceError.

    Raises:
        OrderPersistenceError: stage "header" (nothing persisted) or "items"
            (nothing persisted in atomic mode, orphaned header in sequential mode).
    """
    repository = repository or SqlOrderRepository(db)
    mode = mode or settings.ORDER_WRITE_MODE
    if mode not in (ATOMIC, SEQUENTIAL):
        raise ValueError(f"Unknown order write mode: {mode}")

    try:
        order = repository.create_order(header)
        order_id = order.id
        if mode == SEQUENTIAL:
            db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"[ORDER] Header insert failed user_id={header.user_id}: {type(e).__name__}: {e}")
        raise OrderPersistenceError("header", "Could not create the order") from e

    try:
        repository.create_order_items(order_id, rows)
        db.commit()
    except Exception as e:
        db.rollback()
        if mode == SEQUENTIAL:
            logger.error(
                f"[ORDER] Item insert failed, order_id={order_id} is left without items: "
                f"{type(e).__name__}: {e}"
            )
            raise OrderPersistenceError("items", "Could not save the order items", order_id=order_id) from e
        logger.error(f"[ORDER] Item insert failed, order rolled back: {type(e).__name__}: {e}")
        raise OrderPersistenceError("items", "Could not save the order items") from e

    db.refresh(order)
    return order


def _checked_customer(db: Session, customer_id: Optional[int]) -> Optional[int]:
    if customer_id is None:
        return None
    return get_customer(db, customer_id).id


def submit_order(db: Session, user_id: int, request: OrderCreate, repository=None) -> Order:
    """Price and persist a submitted order. Lookup and validation errors abort before any write."""
    try:
        customer_id = _checked_customer(db, request.customer_id)
        rows = price_order(db, request)
        header = OrderHeader(
            user_id=user_id,
            total_price=request.total_price,
            customer_id=customer_id,
            template_id=request.template_id,
        )
        order = write_order(db, header, rows, repository=repository)
    except Exception as e:
        AuditLog.log_order_failed(user_id, stage=getattr(e, "stage", "pricing"), reason=str(e))
        raise

    AuditLog.log_order_created(order, item_count=len(rows))
    logger.info(
        f"[ORDER] Created order_id={order.id} user_id={user_id} total={order.total_price} "
        f"items={len(rows)} template_id={order.template_id}"
    )
    return order


def submit_basket(db: Session, user_id: int, basket: BasketState, repository=None) -> Order:
    """Submit a saved basket. The caller clears the basket only after this returns."""
    try:
        customer_id = _checked_customer(db, basket.customer_id)
        rows = price_basket(db, basket)
        header = OrderHeader(
            user_id=user_id,
            total_price=basket.total(),
            customer_id=customer_id,
            template_id=basket.template_id,
        )
        order = write_order(db, header, rows, repository=repository)
    except Exception as e:
        AuditLog.log_order_failed(user_id, stage=getattr(e, "stage", "pricing"), reason=str(e))
        raise

    AuditLog.log_order_created(order, item_count=len(rows))
    logger.info(
        f"[CHECKOUT] Basket submitted as order_id={order.id} user_id={user_id} total={order.total_price}"
    )
    return order
