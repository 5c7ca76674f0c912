"""Seed a demo pharmacist, drugs, customers and two templates for the till."""
from decimal import Decimal

from pharmacy_pos.db.init_db import init_db
from pharmacy_pos.db.session import SessionLocal
from pharmacy_pos.models.customer import Customer
from pharmacy_pos.models.drug import Drug, DrugGroup
from pharmacy_pos.models.template import Template, TemplateItem
from pharmacy_pos.models.user import User


DRUGS = [
    # name, unit, unit price (VND), group
    ("Paracetamol 500mg", "tablet", 1000, "Pain & fever"),
    ("Ibuprofen 400mg", "tablet", 2000, "Pain & fever"),
    ("Vitamin C 500mg", "tablet", 1500, "Supplements"),
    ("Oresol", "sachet", 3000, "Supplements"),
    ("Loratadine 10mg", "tablet", 2500, "Allergy"),
    ("Dextromethorphan syrup", "bottle", 45000, "Cough & cold"),
]

TEMPLATES = [
    # name, overridden total (None = derived), [(drug name, quantity, custom price)]
    ("Cold combo", Decimal("60000"), [
        ("Paracetamol 500mg", 10, None),
        ("Vitamin C 500mg", 10, None),
        ("Dextromethorphan syrup", 1, None),
    ]),
    ("Fever kit", None, [
        ("Paracetamol 500mg", 6, Decimal("900")),
        ("Oresol", 4, None),
    ]),
]


def seed_catalog():
    init_db()
    db = SessionLocal()
    try:
        user = db.query(User).first()
        if not user:
            user = User(email="pharmacist@example.com", name="Demo Pharmacist")
            db.add(user)
            db.flush()
            print(f"Created user {user.email} (id={user.id})")

        groups = {}
        drugs = {}
        for name, unit, price, group_name in DRUGS:
            if group_name not in groups:
                groups[group_name] = DrugGroup(name=group_name)
                db.add(groups[group_name])
            drug = Drug(name=name, unit=unit, unit_price=Decimal(price), group=groups[group_name])
            db.add(drug)
            drugs[name] = drug
        db.flush()

        for name, total, items in TEMPLATES:
            template = Template(user_id=user.id, name=name, total_price=total)
            template.items = [
                TemplateItem(drug_id=drugs[drug_name].id, quantity=quantity, custom_price=custom)
                for drug_name, quantity, custom in items
            ]
            db.add(template)

        db.add_all([
            Customer(name="Nguyen Van An", phone="0901234567"),
            Customer(name="Tran Thi Binh", phone="0912345678"),
        ])
        db.commit()
        print(f"Seeded {len(DRUGS)} drugs, {len(TEMPLATES)} templates, 2 customers")
    finally:
        db.close()


if __name__ == "__main__":
    seed_catalog()
