"""Template lookup and expansion into weighted drug lines."""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session, selectinload

from pharmacy_pos.core.exceptions import CatalogLookupError
from pharmacy_pos.models.customer import Customer
from pharmacy_pos.models.drug import Drug
from pharmacy_pos.models.template import Template, TemplateItem
from pharmacy_pos.schemas.basket import DrugLine, TemplateLine, TemplateSubItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpandedItem:
    drug_id: int
    quantity: int
    # Allocation weight only, not the price finally charged
    standard_price: Decimal


def get_template(db: Session, template_id: int) -> Template:
    """Active template with its items and their drugs. Soft-deleted counts as missing."""
    template = (
        db.query(Template)
        .options(selectinload(Template.items).selectinload(TemplateItem.drug))
        .filter(Template.id == template_id, Template.deleted_at.is_(None))
        .first()
    )
    if not template:
        raise CatalogLookupError("Template", template_id)
    return template


def get_drugs_by_ids(db: Session, ids: Iterable[int]) -> Dict[int, Drug]:
    wanted = set(ids)
    if not wanted:
        return {}
    drugs = {d.id: d for d in db.query(Drug).filter(Drug.id.in_(wanted)).all()}
    missing = sorted(wanted - drugs.keys())
    if missing:
        raise CatalogLookupError("Drug", missing[0] if len(missing) == 1 else missing)
    return drugs


def get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise CatalogLookupError("Customer", customer_id)
    return customer


def standard_price(item: TemplateItem) -> Decimal:
    """custom_price wins over the drug's base price inside a template."""
    if item.custom_price is not None:
        return Decimal(item.custom_price)
    if item.drug is None:
        raise CatalogLookupError("Drug", item.drug_id)
    return Decimal(item.drug.unit_price or 0)


def expand_template(db: Session, template_id: int) -> List[ExpandedItem]:
    template = get_template(db, template_id)
    # Items whose drug row vanished cannot be priced
    get_drugs_by_ids(db, [item.drug_id for item in template.items])
    return [
        ExpandedItem(drug_id=item.drug_id, quantity=item.quantity, standard_price=standard_price(item))
        for item in template.items
    ]


def template_price(template: Template) -> Decimal:
    """Overridden total if set, else the sum of the items at standard price."""
    if template.total_price is not None:
        return Decimal(template.total_price)
    return sum((standard_price(item) * item.quantity for item in template.items), Decimal("0"))


def template_line(db: Session, template_id: int) -> TemplateLine:
    """One combo line for the basket, quantity 1."""
    template = get_template(db, template_id)
    return TemplateLine(
        template_id=template.id,
        name=template.name,
        price=template_price(template),
        quantity=1,
        items=[
            TemplateSubItem(
                drug_id=item.drug_id,
                name=item.drug.name if item.drug else "",
                unit=item.drug.unit if item.drug else "",
                quantity=item.quantity,
            )
            for item in template.items
        ],
    )


def template_drug_lines(db: Session, template_id: int) -> List[DrugLine]:
    """The template's drugs as individual basket lines at their standard price."""
    template = get_template(db, template_id)
    lines = []
    for item in template.items:
        price = standard_price(item)
        if item.drug is None:
            raise CatalogLookupError("Drug", item.drug_id)
        lines.append(
            DrugLine(
                drug_id=item.drug_id,
                name=item.drug.name,
                unit=item.drug.unit,
                price=price,
                quantity=item.quantity,
                note=item.note,
            )
        )
    logger.info(f"[TEMPLATE] Loaded template_id={template_id} as {len(lines)} drug lines")
    return lines
