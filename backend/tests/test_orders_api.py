"""HTTP tests for order submission, history and reporting."""
from datetime import date, timedelta, timezone, datetime
from decimal import Decimal

from pharmacy_pos.core.config import settings
from pharmacy_pos.core.security import create_access_token
from pharmacy_pos.models.user import User
from pharmacy_pos.services.order_service import SqlOrderRepository


def post_order(client, items, total, **extra):
    return client.post("/orders", json={"items": items, "total_price": str(total), **extra})


def item(drug_id, quantity, unit_price, **extra):
    return {"drug_id": drug_id, "quantity": quantity, "unit_price": str(unit_price), **extra}


def test_create_plain_order(client, catalog):
    response = post_order(client, [item(catalog.paracetamol, 10, 1000), item(catalog.oresol, 2, 3000)], 16000)

    assert response.status_code == 200
    order = response.json()
    assert order["status"] == "completed"
    assert [Decimal(i["line_total"]) for i in order["items"]] == [Decimal("10000"), Decimal("6000")]


def test_templated_order_ignores_client_unit_prices(client, catalog):
    response = post_order(
        client,
        [item(catalog.paracetamol, 2, 1), item(catalog.vitamin_c, 3, 1), item(catalog.oresol, 1, 1)],
        61,
        template_id=catalog.even_combo,
    )

    order = response.json()
    assert Decimal(order["total_price"]) == Decimal("61")
    assert [Decimal(i["line_total"]) for i in order["items"]] == [Decimal("20"), Decimal("31"), Decimal("10")]
    assert Decimal(order["items"][1]["unit_price"]) == Decimal("10.333333")
    assert {i["template_id"] for i in order["items"]} == {catalog.even_combo}


def test_total_mismatch_is_400(client, catalog):
    response = post_order(client, [item(catalog.paracetamol, 1, 1000)], 999)

    assert response.status_code == 400
    assert client.get("/orders").json() == []


def test_missing_template_is_404(client, catalog):
    response = post_order(client, [item(catalog.paracetamol, 1, 1000)], 1000, template_id=9999)

    assert response.status_code == 404


def test_zero_quantity_is_422(client, catalog):
    response = post_order(client, [item(catalog.paracetamol, 0, 1000)], 0)

    assert response.status_code == 422


def test_history_newest_first_and_filters(client, catalog):
    first = post_order(client, [item(catalog.paracetamol, 1, 1000)], 1000, customer_id=catalog.customer).json()
    second = post_order(client, [item(catalog.syrup, 1, 45000)], 45000).json()

    history = client.get("/orders").json()
    assert [o["id"] for o in history] == [second["id"], first["id"]]

    by_customer = client.get("/orders", params={"customer_id": catalog.customer}).json()
    assert [o["id"] for o in by_customer] == [first["id"]]

    by_phone = client.get("/orders", params={"search": "0901"}).json()
    assert [o["id"] for o in by_phone] == [first["id"]]

    by_drug = client.get("/orders", params={"search": "syrup"}).json()
    assert [o["id"] for o in by_drug] == [second["id"]]


def test_history_date_range(client, catalog):
    post_order(client, [item(catalog.paracetamol, 1, 1000)], 1000)
    today = datetime.now(timezone.utc).date()

    assert len(client.get("/orders", params={"date_from": str(today), "date_to": str(today)}).json()) == 1
    assert client.get("/orders", params={"date_to": str(today - timedelta(days=1))}).json() == []
    assert client.get("/orders", params={"date_from": str(today + timedelta(days=1))}).json() == []


def test_get_order(client, catalog):
    created = post_order(client, [item(catalog.oresol, 3, 3000, note="with water")], 9000).json()

    response = client.get(f"/orders/{created['id']}")

    assert response.status_code == 200
    assert response.json()["items"][0]["note"] == "with water"


def test_other_pharmacists_orders_are_hidden(client, db, catalog):
    created = post_order(client, [item(catalog.oresol, 1, 3000)], 3000).json()
    other = User(email="other@example.com", name="Minh")
    db.add(other)
    db.commit()

    client.headers["Authorization"] = f"Bearer {create_access_token(str(other.id))}"

    assert client.get(f"/orders/{created['id']}").status_code == 404
    assert client.get("/orders").json() == []


def test_unknown_order_is_404(client):
    assert client.get("/orders/12345").status_code == 404


def test_today_stats(client, catalog):
    post_order(client, [item(catalog.paracetamol, 2, 1000)], 2000)
    post_order(client, [item(catalog.oresol, 1, 3000)], 3000)

    stats = client.get("/orders/stats/today").json()

    assert stats["order_count"] == 2
    assert Decimal(stats["revenue"]) == Decimal("5000")


def test_export_csv(client, catalog):
    post_order(client, [item(catalog.paracetamol, 2, 1000), item(catalog.oresol, 1, 3000)], 5000,
               customer_id=catalog.customer)

    response = client.get("/orders/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = response.text.strip().splitlines()
    assert rows[0].startswith("Order,Date,Customer")
    assert len(rows) == 3
    assert "Nguyen Van An" in rows[1]
    assert f"orders_{date.today()}.csv" in response.headers["content-disposition"]


def test_cookie_token_is_accepted(client, pharmacist):
    token = client.headers.pop("Authorization").split(" ", 1)[1]
    client.cookies.set("pos_token", token)

    assert client.get("/orders").status_code == 200


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_unsaved_order_is_500_without_leftover_header(client, catalog, monkeypatch):
    def unreachable(self, order_id, rows):
        raise ConnectionError("order store unreachable")

    monkeypatch.setattr(settings, "ORDER_WRITE_MODE", "atomic")
    monkeypatch.setattr(SqlOrderRepository, "create_order_items", unreachable)

    response = post_order(client, [item(catalog.paracetamol, 2, 1000)], 2000)

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Submission failed")
    assert "unreachable" not in response.text
    assert client.get("/orders").json() == []


def test_unsaved_order_reports_failure_in_sequential_mode(client, catalog, monkeypatch):
    def unreachable(self, order_id, rows):
        raise ConnectionError("order store unreachable")

    monkeypatch.setattr(settings, "ORDER_WRITE_MODE", "sequential")
    monkeypatch.setattr(SqlOrderRepository, "create_order_items", unreachable)

    response = post_order(client, [item(catalog.paracetamol, 2, 1000)], 2000)

    assert response.status_code == 500
    orphans = client.get("/orders").json()
    assert len(orphans) == 1
    assert orphans[0]["items"] == []
