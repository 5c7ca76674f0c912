from pharmacy_pos.models.user import User
from pharmacy_pos.models.drug import Drug, DrugGroup
from pharmacy_pos.models.customer import Customer
from pharmacy_pos.models.template import Template, TemplateItem
from pharmacy_pos.models.order import Order, OrderItem
from pharmacy_pos.models.checkout_session import CheckoutSession

__all__ = [
    "User", "Drug", "DrugGroup", "Customer", "Template", "TemplateItem",
    "Order", "OrderItem", "CheckoutSession",
]
