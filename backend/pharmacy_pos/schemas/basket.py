"""Basket lines: a tagged union of drug lines and template (combo) lines.

price is per one unit of the line. For a template line that is the whole
combo's price and quantity multiplies the combo.
"""
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class DrugLine(BaseModel):
    type: Literal["drug"] = "drug"
    drug_id: int
    name: str = ""
    unit: str = ""
    price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    note: Optional[str] = None

    @property
    def identity_key(self) -> int:
        return self.drug_id


class TemplateSubItem(BaseModel):
    """Flattened template content, for display and expansion."""
    drug_id: int
    name: str = ""
    unit: str = ""
    quantity: int = Field(default=1, ge=1)


class TemplateLine(BaseModel):
    type: Literal["template"] = "template"
    template_id: int
    name: str = ""
    price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    items: List[TemplateSubItem] = Field(default_factory=list)

    @property
    def identity_key(self) -> int:
        return self.template_id


BasketLine = Annotated[Union[DrugLine, TemplateLine], Field(discriminator="type")]


class QuantityUpdate(BaseModel):
    delta: int


class PriceUpdate(BaseModel):
    # Validated by the basket itself so a bad price is rejected without state change
    price: Union[Decimal, float, str]


class CustomerSelect(BaseModel):
    customer_id: Optional[int] = None


class BasketResponse(BaseModel):
    lines: List[BasketLine]
    customer_id: Optional[int] = None
    template_id: Optional[int] = None
    total: Decimal
