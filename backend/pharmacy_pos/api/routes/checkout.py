"""
Checkout: the pharmacist's saved basket.

Every mutation loads the basket, applies one BasketState operation and
saves it explicitly. A failed submission leaves the basket untouched.
"""
import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from pharmacy_pos.api.deps import get_db, get_current_user
from pharmacy_pos.core.audit import AuditLog
from pharmacy_pos.core.exceptions import BusinessError, CheckoutError, CheckoutValidationError
from pharmacy_pos.models.user import User
from pharmacy_pos.schemas.basket import BasketLine, BasketResponse, CustomerSelect, PriceUpdate, QuantityUpdate
from pharmacy_pos.schemas.order import OrderResponse
from pharmacy_pos.services import order_service, template_service
from pharmacy_pos.services.basket import BasketState, clear_basket, load_basket, save_basket

logger = logging.getLogger(__name__)

router = APIRouter()


def _response(basket: BasketState) -> BasketResponse:
    return BasketResponse(
        lines=basket.lines,
        customer_id=basket.customer_id,
        template_id=basket.template_id,
        total=basket.total(),
    )


def _save(db: Session, user: User, basket: BasketState, action: str, changes: dict | None = None) -> BasketResponse:
    save_basket(db, user.id, basket)
    AuditLog.log_action(action, "basket", None, user.id, changes=changes)
    return _response(basket)


@router.get("", response_model=BasketResponse)
def get_basket(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _response(load_basket(db, current_user.id))


@router.post("/items", response_model=BasketResponse)
def add_item(
    line: BasketLine = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a drug or template line; an equal line (same id and price) just grows."""
    basket = load_basket(db, current_user.id)
    basket.add_item(line)
    return _save(db, current_user, basket, "add", {"type": line.type, "id": line.identity_key})


@router.post("/templates/{template_id}", response_model=BasketResponse)
def add_template(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Add a template as one combo line priced at the template's price."""
    try:
        line = template_service.template_line(db, template_id)
    except CheckoutError as e:
        raise BusinessError.submission_failed(e)
    basket = load_basket(db, current_user.id)
    basket.add_item(line)
    return _save(db, current_user, basket, "add", {"type": "template", "id": template_id})


@router.post("/start/{template_id}", response_model=BasketResponse)
def start_from_template(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Start a new order from a template: its drugs become lines and the order remembers the template."""
    try:
        lines = template_service.template_drug_lines(db, template_id)
    except CheckoutError as e:
        raise BusinessError.submission_failed(e)
    basket = load_basket(db, current_user.id)
    customer_id = basket.customer_id
    basket.clear()
    basket.set_customer(customer_id)
    basket.add_items(lines)
    basket.set_template(template_id)
    return _save(db, current_user, basket, "start", {"template_id": template_id})


@router.patch("/items/{index}/quantity", response_model=BasketResponse)
def update_quantity(
    index: int,
    data: QuantityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    basket = load_basket(db, current_user.id)
    try:
        basket.update_quantity(index, data.delta)
    except CheckoutValidationError as e:
        raise BusinessError.bad_request(str(e))
    return _save(db, current_user, basket, "update", {"index": index, "delta": data.delta})


@router.patch("/items/{index}/price", response_model=BasketResponse)
def update_price(
    index: int,
    data: PriceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    basket = load_basket(db, current_user.id)
    try:
        basket.update_line_price(index, data.price)
    except CheckoutValidationError as e:
        raise BusinessError.bad_request(str(e))
    return _save(db, current_user, basket, "update", {"index": index, "price": str(data.price)})


@router.delete("/items/{index}", response_model=BasketResponse)
def remove_item(index: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    basket = load_basket(db, current_user.id)
    try:
        basket.remove_item(index)
    except CheckoutValidationError as e:
        raise BusinessError.bad_request(str(e))
    return _save(db, current_user, basket, "remove", {"index": index})


@router.put("/customer", response_model=BasketResponse)
def set_customer(data: CustomerSelect, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Attach (or detach with null) the customer. Has no effect on prices."""
    if data.customer_id is not None:
        try:
            template_service.get_customer(db, data.customer_id)
        except CheckoutError as e:
            raise BusinessError.submission_failed(e)
    basket = load_basket(db, current_user.id)
    basket.set_customer(data.customer_id)
    return _save(db, current_user, basket, "update", {"customer_id": data.customer_id})


@router.delete("", response_model=BasketResponse)
def clear(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    clear_basket(db, current_user.id)
    AuditLog.log_action("clear", "basket", None, current_user.id)
    return _response(BasketState())


@router.post("/submit", response_model=OrderResponse)
def submit(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Turn the saved basket into an order. The basket is cleared only on success."""
    basket = load_basket(db, current_user.id)
    try:
        order = order_service.submit_basket(db, current_user.id, basket)
    except CheckoutError as e:
        logger.info(f"[CHECKOUT] Submission failed, basket kept for user_id={current_user.id}")
        raise BusinessError.submission_failed(e)
    clear_basket(db, current_user.id)
    return order
