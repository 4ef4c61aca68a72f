from datetime import date, timedelta
from decimal import Decimal

from models.material import Material
from models.stock_ledger import StockTransaction
from tests.factories import add_material, add_party


def create_material(client, headers, name="Cotton White", opening_stock="0", **extra):
    payload = {"name": name, "unit": "Mtr", "rate": "120", "opening_stock": opening_stock, **extra}
    response = client.post("/api/materials", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_material_create_records_opening_stock(client, db_session, admin_headers):
    material = create_material(client, admin_headers, opening_stock="500")

    assert material["id"] == "MAT001"
    assert Decimal(material["current_stock"]) == Decimal("500")
    row = db_session.query(StockTransaction).filter(StockTransaction.material_id == "MAT001").one()
    assert row.source_type == "opening_stock"
    assert row.balance_after == Decimal("500")


def test_material_names_are_unique_ignoring_case(client, admin_headers):
    create_material(client, admin_headers, name="Cotton White")

    response = client.post("/api/materials", json={"name": "  cotton WHITE "}, headers=admin_headers)

    assert response.status_code == 400


def test_stock_in_increases_stock(client, admin_headers):
    create_material(client, admin_headers, opening_stock="100")

    response = client.post("/api/stock/in", json={
        "material_id": "MAT001",
        "quantity": "25",
        "source_type": "market_purchase",
        "rate": "110",
    }, headers=admin_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["transaction_type"] == "add"
    assert Decimal(body["balance_after"]) == Decimal("125")
    material = client.get("/api/materials/MAT001", headers=admin_headers).json()["data"]
    assert Decimal(material["current_stock"]) == Decimal("125")


def test_party_supply_requires_party(client, db_session, admin_headers):
    create_material(client, admin_headers)

    response = client.post("/api/stock/in", json={
        "material_id": "MAT001",
        "quantity": "10",
        "source_type": "party_supply",
    }, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Party is required for party supply"


def test_stock_out_rejects_more_than_available(client, db_session, admin_headers):
    create_material(client, admin_headers, opening_stock="10")

    response = client.post("/api/stock/out", json={
        "material_id": "MAT001",
        "quantity": "11",
        "reason_type": "wastage",
    }, headers=admin_headers)

    assert response.status_code == 400
    assert "Insufficient stock" in response.json()["detail"]
    assert db_session.query(StockTransaction).count() == 1


def test_stock_out_decreases_stock(client, admin_headers):
    create_material(client, admin_headers, opening_stock="10")

    response = client.post("/api/stock/out", json={
        "material_id": "MAT001",
        "quantity": "4",
        "reason_type": "sample",
    }, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["transaction_type"] == "reduce"
    assert Decimal(response.json()["balance_after"]) == Decimal("6")


def test_stock_routes_require_staff_role(client, make_user):
    _, headers = make_user("pending@mysticvastra.test")

    response = client.get("/api/stock/transactions", headers=headers)

    assert response.status_code == 403


def test_material_ledger_running_balance(client, admin_headers):
    create_material(client, admin_headers, opening_stock="100")
    client.post("/api/stock/in", json={
        "material_id": "MAT001", "quantity": "50", "source_type": "market_purchase",
    }, headers=admin_headers)
    client.post("/api/stock/out", json={
        "material_id": "MAT001", "quantity": "30", "reason_type": "wastage",
    }, headers=admin_headers)

    response = client.get("/api/stock/ledger/MAT001", headers=admin_headers)

    assert response.status_code == 200
    balances = [Decimal(entry["balance"]) for entry in response.json()["entries"]]
    assert balances == [Decimal("100"), Decimal("150"), Decimal("120")]


def test_stock_summary(client, admin_headers):
    create_material(client, admin_headers, opening_stock="100")
    client.post("/api/stock/in", json={
        "material_id": "MAT001", "quantity": "50", "source_type": "market_purchase",
    }, headers=admin_headers)
    client.post("/api/stock/out", json={
        "material_id": "MAT001", "quantity": "30", "reason_type": "wastage",
    }, headers=admin_headers)

    [summary] = client.get("/api/stock/summary", headers=admin_headers).json()

    assert Decimal(summary["opening_stock"]) == Decimal("100")
    assert Decimal(summary["total_in"]) == Decimal("50")
    assert Decimal(summary["total_out"]) == Decimal("30")
    assert Decimal(summary["closing_stock"]) == Decimal("120")


def test_transactions_filtered_newest_first(client, admin_headers):
    create_material(client, admin_headers, opening_stock="100")
    client.post("/api/stock/out", json={
        "material_id": "MAT001", "quantity": "1", "reason_type": "sample", "transaction_date": "2026-03-01",
    }, headers=admin_headers)
    client.post("/api/stock/out", json={
        "material_id": "MAT001", "quantity": "2", "reason_type": "sample", "transaction_date": "2026-03-05",
    }, headers=admin_headers)

    response = client.get("/api/stock/transactions", params={"direction": "out"}, headers=admin_headers)

    quantities = [Decimal(row["quantity"]) for row in response.json()]
    assert quantities == [Decimal("2"), Decimal("1")]


def test_party_summary(client, db_session, admin_headers):
    party = add_party(db_session, "Sharma Textiles", prefix="ST")
    add_material(db_session, "Cotton White", 0)
    db_session.commit()

    client.post("/api/stock/in", json={
        "material_id": "MAT001", "quantity": "40", "source_type": "party_supply", "party_id": party.id,
    }, headers=admin_headers)
    client.post("/api/orders/", json={
        "party_id": party.id,
        "deductions": [{"material_name": "cotton white", "quantity": "15", "rate": "0"}],
    }, headers=admin_headers)

    [row] = client.get("/api/stock/party-summary", headers=admin_headers).json()

    assert row["party_name"] == "Sharma Textiles"
    assert Decimal(row["received"]) == Decimal("40")
    assert Decimal(row["used"]) == Decimal("15")
    assert Decimal(row["balance"]) == Decimal("25")


def test_opening_stock_edit_adjusts_stock_and_ledger(client, db_session, admin_headers):
    create_material(client, admin_headers, opening_stock="100")
    client.post("/api/stock/out", json={
        "material_id": "MAT001", "quantity": "30", "reason_type": "wastage",
    }, headers=admin_headers)

    response = client.put("/api/materials/MAT001/opening-stock", json={"opening_stock": "120"}, headers=admin_headers)

    assert response.status_code == 200
    assert Decimal(response.json()["data"]["current_stock"]) == Decimal("90")
    rows = (
        db_session.query(StockTransaction)
        .order_by(StockTransaction.transaction_date.asc(), StockTransaction.id.asc())
        .all()
    )
    assert [row.quantity for row in rows] == [Decimal("120"), Decimal("30")]
    assert [row.balance_after for row in rows] == [Decimal("120"), Decimal("90")]


def test_opening_stock_edit_cannot_make_stock_negative(client, db_session, admin_headers):
    create_material(client, admin_headers, opening_stock="10")
    client.post("/api/stock/out", json={
        "material_id": "MAT001", "quantity": "8", "reason_type": "wastage",
    }, headers=admin_headers)

    response = client.put("/api/materials/MAT001/opening-stock", json={"opening_stock": "0"}, headers=admin_headers)

    assert response.status_code == 400
    assert db_session.get(Material, "MAT001").current_stock == Decimal("2")


def test_low_stock_listing(client, admin_headers):
    create_material(client, admin_headers, name="Cotton White", opening_stock="5", min_stock="10")
    create_material(client, admin_headers, name="Silk Red", opening_stock="50", min_stock="10")

    response = client.get("/api/materials/low-stock", headers=admin_headers)

    assert [m["name"] for m in response.json()["data"]] == ["Cotton White"]
    assert response.json()["data"][0]["is_low_stock"] is True


def test_opening_stock_edit_after_snapshot_keeps_ledger_consistent(client, db_session, admin_headers):
    add_material(db_session, "Cotton Yarn", 100, opening=0)
    db_session.commit()
    assert client.post("/functions/init-stock-ledger", headers=admin_headers).json() == {"inserted": 1}

    response = client.put("/api/materials/MAT001/opening-stock", json={"opening_stock": "10"}, headers=admin_headers)

    assert response.status_code == 200
    assert Decimal(response.json()["data"]["current_stock"]) == Decimal("110")
    [row] = db_session.query(StockTransaction).all()
    assert row.quantity == Decimal("110")
    assert row.balance_after == Decimal("110")

    ledger = client.get("/api/stock/ledger/MAT001", headers=admin_headers).json()
    assert [Decimal(entry["balance"]) for entry in ledger["entries"]] == [Decimal("110")]
    assert Decimal(ledger["current_stock"]) == Decimal("110")


def test_clearing_opening_stock_keeps_snapshot_row(client, db_session, admin_headers):
    add_material(db_session, "Cotton Yarn", 100, opening=0)
    db_session.commit()
    client.post("/functions/init-stock-ledger", headers=admin_headers)

    response = client.put("/api/materials/MAT001/opening-stock", json={"opening_stock": "0"}, headers=admin_headers)

    assert response.status_code == 200
    [row] = db_session.query(StockTransaction).all()
    assert row.quantity == Decimal("100")
    assert row.balance_after == Decimal("100")


def test_ledger_balance_counts_entries_dated_before_opening_row(client, admin_headers):
    create_material(client, admin_headers, opening_stock="50")
    yesterday = date.today() - timedelta(days=1)
    client.post("/api/stock/in", json={
        "material_id": "MAT001", "quantity": "10", "source_type": "market_purchase",
        "transaction_date": yesterday.isoformat(),
    }, headers=admin_headers)

    ledger = client.get("/api/stock/ledger/MAT001", headers=admin_headers).json()

    assert [Decimal(entry["balance"]) for entry in ledger["entries"]] == [Decimal("10"), Decimal("60")]
    assert Decimal(ledger["current_stock"]) == Decimal("60")

    recent = client.get(
        "/api/stock/ledger/MAT001", params={"from_date": date.today().isoformat()}, headers=admin_headers
    ).json()
    assert [Decimal(entry["balance"]) for entry in recent["entries"]] == [Decimal("60")]
