"""Shared fixtures: in-memory database, a pharmacist, a small catalog and an API client."""
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pharmacy_pos.api.deps import get_db
from pharmacy_pos.core.security import create_access_token
from pharmacy_pos.db.init_db import init_db
from pharmacy_pos.main import app
from pharmacy_pos.models.customer import Customer
from pharmacy_pos.models.drug import Drug
from pharmacy_pos.models.template import Template, TemplateItem
from pharmacy_pos.models.user import User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def pharmacist(db):
    user = User(email="pharmacist@example.com", name="Lan")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def catalog(db, pharmacist):
    """
    paracetamol 1000, vitamin_c 1500, syrup 45000, oresol 3000

    cold_combo      overridden total 60000: 10 paracetamol, 10 vitamin C, 1 syrup
    fever_kit       derived price: 6 paracetamol at custom 900, 4 oresol
    even_combo      overridden total 61: three drugs at custom 10, quantities 2, 3, 1
    """
    paracetamol = Drug(name="Paracetamol 500mg", unit="tablet", unit_price=Decimal("1000"))
    vitamin_c = Drug(name="Vitamin C 500mg", unit="tablet", unit_price=Decimal("1500"))
    syrup = Drug(name="Dextromethorphan syrup", unit="bottle", unit_price=Decimal("45000"))
    oresol = Drug(name="Oresol", unit="sachet", unit_price=Decimal("3000"))
    db.add_all([paracetamol, vitamin_c, syrup, oresol])
    db.flush()

    cold_combo = Template(user_id=pharmacist.id, name="Cold combo", total_price=Decimal("60000"))
    cold_combo.items = [
        TemplateItem(drug_id=paracetamol.id, quantity=10),
        TemplateItem(drug_id=vitamin_c.id, quantity=10),
        TemplateItem(drug_id=syrup.id, quantity=1),
    ]
    fever_kit = Template(user_id=pharmacist.id, name="Fever kit", total_price=None)
    fever_kit.items = [
        TemplateItem(drug_id=paracetamol.id, quantity=6, custom_price=Decimal("900")),
        TemplateItem(drug_id=oresol.id, quantity=4),
    ]
    even_combo = Template(user_id=pharmacist.id, name="Even combo", total_price=Decimal("61"))
    even_combo.items = [
        TemplateItem(drug_id=paracetamol.id, quantity=2, custom_price=Decimal("10")),
        TemplateItem(drug_id=vitamin_c.id, quantity=3, custom_price=Decimal("10")),
        TemplateItem(drug_id=oresol.id, quantity=1, custom_price=Decimal("10")),
    ]
    customer = Customer(name="Nguyen Van An", phone="0901234567")
    db.add_all([cold_combo, fever_kit, even_combo, customer])
    db.commit()

    return SimpleNamespace(
        paracetamol=paracetamol.id,
        vitamin_c=vitamin_c.id,
        syrup=syrup.id,
        oresol=oresol.id,
        cold_combo=cold_combo.id,
        fever_kit=fever_kit.id,
        even_combo=even_combo.id,
        customer=customer.id,
    )


@pytest.fixture
def client(session_factory, pharmacist):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    test_client.headers.update({"Authorization": f"Bearer {create_access_token(str(pharmacist.id))}"})
    yield test_client
    app.dependency_overrides.clear()
