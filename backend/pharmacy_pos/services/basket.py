"""
Basket: the checkout contents of one pharmacist.

BasketState is a plain value. Mutations never persist anything on their
own; callers save explicitly with save_basket() after each change.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from pharmacy_pos.core.exceptions import CheckoutValidationError
from pharmacy_pos.models.checkout_session import CheckoutSession
from pharmacy_pos.schemas.basket import BasketLine

logger = logging.getLogger(__name__)

_line_adapter = TypeAdapter(BasketLine)


class BasketState:
    def __init__(self, lines: Optional[List[BasketLine]] = None, customer_id: Optional[int] = None,
                 template_id: Optional[int] = None):
        self.lines: List[BasketLine] = list(lines or [])
        self.customer_id = customer_id
        # Set when the order was started from a template (provenance only)
        self.template_id = template_id

    def __len__(self):
        return len(self.lines)

    def _line_at(self, index: int) -> BasketLine:
        if index < 0 or index >= len(self.lines):
            raise CheckoutValidationError(f"No basket line at index {index}")
        return self.lines[index]

    def add_item(self, line: BasketLine) -> int:
        """
        Add a line, merging into an equivalent one.

        Lines are equivalent when type, drug/template id and price all match.
        Same drug at a different price stays a separate line.
        Returns the index of the line that now holds the quantity.
        """
        for index, existing in enumerate(self.lines):
            if (
                existing.type == line.type
                and existing.identity_key == line.identity_key
                and existing.price == line.price
            ):
                existing.quantity += line.quantity
                return index
        self.lines.append(line.model_copy(deep=True))
        return len(self.lines) - 1

    def add_items(self, lines: Iterable[BasketLine]) -> None:
        for line in lines:
            self.add_item(line)

    def remove_item(self, index: int) -> BasketLine:
        self._line_at(index)
        return self.lines.pop(index)

    def update_quantity(self, index: int, delta: int) -> BasketLine:
        """Step the quantity; it never drops below 1 (removal is the only way to zero)."""
        line = self._line_at(index)
        line.quantity = max(1, line.quantity + delta)
        return line

    def update_line_price(self, index: int, new_price) -> BasketLine:
        """Set an explicit per-line price. Rejected unless finite and >= 0."""
        line = self._line_at(index)
        try:
            price = Decimal(str(new_price))
        except (InvalidOperation, ValueError, TypeError):
            raise CheckoutValidationError(f"Price must be a number, got {new_price!r}")
        if not price.is_finite() or price < 0:
            raise CheckoutValidationError("Price must be a finite number >= 0")
        line.price = price
        return line

    def set_customer(self, customer_id: Optional[int]) -> None:
        self.customer_id = customer_id

    def set_template(self, template_id: Optional[int]) -> None:
        self.template_id = template_id

    def total(self) -> Decimal:
        return sum((line.price * line.quantity for line in self.lines), Decimal("0"))

    def clear(self) -> None:
        self.lines = []
        self.customer_id = None
        self.template_id = None

    def to_payload(self) -> dict:
        return {
            "lines": [line.model_dump(mode="json") for line in self.lines],
            "customer_id": self.customer_id,
            "template_id": self.template_id,
        }

    @classmethod
    def from_payload(cls, payload: Optional[dict]) -> "BasketState":
        payload = payload or {}
        lines = [_line_adapter.validate_python(raw) for raw in payload.get("lines", [])]
        return cls(
            lines=lines,
            customer_id=payload.get("customer_id"),
            template_id=payload.get("template_id"),
        )


def load_basket(db: Session, user_id: int) -> BasketState:
    record = db.query(CheckoutSession).filter(CheckoutSession.user_id == user_id).first()
    if not record:
        return BasketState()
    return BasketState.from_payload(record.payload)


def save_basket(db: Session, user_id: int, basket: BasketState) -> None:
    record = db.query(CheckoutSession).filter(CheckoutSession.user_id == user_id).first()
    payload = basket.to_payload()
    if record:
        record.payload = payload
    else:
        db.add(CheckoutSession(user_id=user_id, payload=payload))
    db.commit()
    logger.info(f"[CHECKOUT] Saved basket user_id={user_id}, lines={len(basket)}, total={basket.total()}")


def clear_basket(db: Session, user_id: int) -> None:
    basket = load_basket(db, user_id)
    basket.clear()
    save_basket(db, user_id, basket)
