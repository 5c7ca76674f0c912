"""HTTP tests for the saved checkout basket."""
from decimal import Decimal

from pharmacy_pos.core.config import settings
from pharmacy_pos.services.order_service import SqlOrderRepository


def drug_line(drug_id, price, quantity=1, **extra):
    return {"type": "drug", "drug_id": drug_id, "name": "Paracetamol", "unit": "tablet",
            "price": str(price), "quantity": quantity, **extra}


def test_requires_token(client):
    client.headers.pop("Authorization")

    response = client.get("/checkout")

    assert response.status_code == 401


def test_empty_basket(client):
    response = client.get("/checkout")

    assert response.status_code == 200
    assert response.json()["lines"] == []
    assert Decimal(response.json()["total"]) == 0


def test_adding_same_drug_and_price_merges(client, catalog):
    client.post("/checkout/items", json=drug_line(catalog.paracetamol, 1000, 2))
    response = client.post("/checkout/items", json=drug_line(catalog.paracetamol, 1000, 3))

    lines = response.json()["lines"]
    assert len(lines) == 1
    assert lines[0]["quantity"] == 5
    assert Decimal(response.json()["total"]) == Decimal("5000")


def test_basket_survives_between_requests(client, catalog):
    client.post("/checkout/items", json=drug_line(catalog.oresol, 3000, 2))

    response = client.get("/checkout")

    assert [line["drug_id"] for line in response.json()["lines"]] == [catalog.oresol]


def test_quantity_and_price_edits(client, catalog):
    client.post("/checkout/items", json=drug_line(catalog.paracetamol, 1000, 2))

    client.patch("/checkout/items/0/quantity", json={"delta": -5})
    response = client.patch("/checkout/items/0/price", json={"price": "1200"})

    line = response.json()["lines"][0]
    assert line["quantity"] == 1
    assert Decimal(line["price"]) == Decimal("1200")


def test_bad_price_is_rejected_and_basket_unchanged(client, catalog):
    client.post("/checkout/items", json=drug_line(catalog.paracetamol, 1000))

    response = client.patch("/checkout/items/0/price", json={"price": "-5"})

    assert response.status_code == 400
    assert Decimal(client.get("/checkout").json()["lines"][0]["price"]) == Decimal("1000")


def test_bad_index_is_rejected(client, catalog):
    response = client.delete("/checkout/items/3")

    assert response.status_code == 400


def test_add_template_as_combo_line(client, catalog):
    response = client.post(f"/checkout/templates/{catalog.cold_combo}")

    line = response.json()["lines"][0]
    assert line["type"] == "template"
    assert Decimal(line["price"]) == Decimal("60000")
    assert len(line["items"]) == 3


def test_add_missing_template_is_404(client, catalog):
    response = client.post("/checkout/templates/9999")

    assert response.status_code == 404


def test_start_from_template_keeps_customer(client, catalog):
    client.put("/checkout/customer", json={"customer_id": catalog.customer})
    client.post("/checkout/items", json=drug_line(catalog.syrup, 45000))

    response = client.post(f"/checkout/start/{catalog.fever_kit}")

    body = response.json()
    assert body["template_id"] == catalog.fever_kit
    assert body["customer_id"] == catalog.customer
    assert [(line["drug_id"], line["quantity"]) for line in body["lines"]] == [
        (catalog.paracetamol, 6), (catalog.oresol, 4),
    ]
    assert Decimal(body["total"]) == Decimal("17400")


def test_unknown_customer_is_404(client, catalog):
    response = client.put("/checkout/customer", json={"customer_id": 4242})

    assert response.status_code == 404


def test_submit_creates_order_and_clears_basket(client, catalog):
    client.put("/checkout/customer", json={"customer_id": catalog.customer})
    client.post("/checkout/items", json=drug_line(catalog.paracetamol, 1000, 10))
    client.post(f"/checkout/templates/{catalog.cold_combo}")

    response = client.post("/checkout/submit")

    assert response.status_code == 200
    order = response.json()
    assert Decimal(order["total_price"]) == Decimal("70000")
    assert order["customer_id"] == catalog.customer
    assert len(order["items"]) == 4
    assert sum(Decimal(item["line_total"]) for item in order["items"]) == Decimal("70000")
    assert client.get("/checkout").json()["lines"] == []


def test_submit_started_template_is_redistributed(client, catalog):
    client.post(f"/checkout/start/{catalog.even_combo}")
    client.patch("/checkout/items/2/price", json={"price": "11"})

    order = client.post("/checkout/submit").json()

    assert order["template_id"] == catalog.even_combo
    assert [Decimal(item["line_total"]) for item in order["items"]] == [
        Decimal("20"), Decimal("31"), Decimal("10"),
    ]


def test_submit_empty_basket_is_400(client):
    response = client.post("/checkout/submit")

    assert response.status_code == 400


def test_failed_submit_keeps_basket(client, catalog):
    client.post("/checkout/items", json=drug_line(999, 1000))

    response = client.post("/checkout/submit")

    assert response.status_code == 404
    assert len(client.get("/checkout").json()["lines"]) == 1


def test_clear(client, catalog):
    client.post("/checkout/items", json=drug_line(catalog.paracetamol, 1000))

    response = client.delete("/checkout")

    assert response.json()["lines"] == []
    assert client.get("/checkout").json()["lines"] == []


def test_unsaved_order_is_500_and_keeps_basket(client, catalog, monkeypatch):
    def unreachable(self, order_id, rows):
        raise ConnectionError("order store unreachable")

    monkeypatch.setattr(settings, "ORDER_WRITE_MODE", "atomic")
    monkeypatch.setattr(SqlOrderRepository, "create_order_items", unreachable)
    client.post("/checkout/items", json=drug_line(catalog.paracetamol, 1000, 2))
    client.post(f"/checkout/templates/{catalog.cold_combo}")

    response = client.post("/checkout/submit")

    assert response.status_code == 500
    assert response.json()["detail"] == "Submission failed: the order could not be saved. Please try again."
    assert len(client.get("/checkout").json()["lines"]) == 2
    assert client.get("/orders").json() == []
