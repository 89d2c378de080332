from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.db import Base, get_db
from app.main import app
from app.inventory.batches import create_batch as register_batch
from app.models import LedgerEntry, Product, Tenant


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)
    with TestingSessionLocal() as db:
        for name in ("Acme Farms", "Other Co"):
            tenant = Tenant(name=name)
            db.add(tenant)
            db.flush()
            db.add(Product(tenant_id=tenant.id, sku="FERT-01", name="Fertilizer", price=Decimal("12.50")))
            db.add(Product(tenant_id=tenant.id, sku="SEED-01", name="Seeds", price=Decimal("3.00")))
        db.commit()
    yield TestingSessionLocal
    Base.metadata.drop_all(engine)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


def product_id(session_factory, tenant_id, sku="FERT-01"):
    with session_factory() as db:
        return db.query(Product.id).filter(Product.tenant_id == tenant_id, Product.sku == sku).scalar()


def create_batch(client, product, number="LOT-1", unit_cost="2.50", expiry_date=None):
    payload = {"product_id": product, "batch_number": number, "unit_cost": unit_cost}
    if expiry_date:
        payload["expiry_date"] = expiry_date
    response = client.post("/api/batches", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_add_and_reduce_round_trip(client, session_factory):
    product = product_id(session_factory, 1)
    batch = create_batch(client, product)

    added = client.post("/api/inventory/add", json={"product_id": product, "batch_id": batch["id"], "amount": "100"})
    reduced = client.post(
        "/api/inventory/reduce",
        json={"product_id": product, "batch_id": batch["id"], "amount": "30", "reference_type": "SALE"},
    )

    assert added.status_code == 200, added.text
    assert reduced.status_code == 200, reduced.text
    assert Decimal(reduced.json()["quantity"]) == Decimal("70")

    ledger = client.get(f"/api/batches/{batch['id']}/ledger").json()
    assert [(row["transaction_type"], Decimal(row["quantity_delta"])) for row in ledger] == [
        ("OUT", Decimal("-30")),
        ("IN", Decimal("100")),
    ]
    assert ledger[0]["actor_id"] == 1
    assert ledger[0]["reference_type"] == "SALE"

    total = client.get(f"/api/inventory/products/{product}/quantity").json()
    assert Decimal(total["quantity"]) == Decimal("70")


def test_reduce_beyond_stock_returns_conflict_with_details(client, session_factory):
    product = product_id(session_factory, 1)
    batch = create_batch(client, product)
    client.post("/api/inventory/add", json={"product_id": product, "batch_id": batch["id"], "amount": "10"})

    response = client.post("/api/inventory/reduce", json={"product_id": product, "batch_id": batch["id"], "amount": "50"})

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_STOCK"
    assert detail["batch_id"] == batch["id"]
    assert Decimal(detail["available"]) == Decimal("10")
    assert Decimal(detail["requested"]) == Decimal("50")
    with session_factory() as db:
        assert db.query(LedgerEntry).count() == 1


def test_other_tenants_batch_is_not_found(client, session_factory):
    foreign_product = product_id(session_factory, 2)
    with session_factory() as db:
        foreign = register_batch(db, tenant_id=2, product_id=foreign_product, batch_number="X", unit_cost="1")
        db.commit()
        foreign_id = foreign.id

    assert client.get(f"/api/batches/{foreign_id}").status_code == 404
    response = client.post(
        "/api/inventory/add", json={"product_id": foreign_product, "batch_id": foreign_id, "amount": "1"}
    )
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"
    assert client.get("/api/batches").json() == []


def test_batch_of_another_product_is_rejected(client, session_factory):
    fertilizer = product_id(session_factory, 1)
    seeds = product_id(session_factory, 1, sku="SEED-01")
    batch = create_batch(client, fertilizer)

    response = client.post("/api/inventory/add", json={"product_id": seeds, "batch_id": batch["id"], "amount": "1"})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


@pytest.mark.parametrize("amount", ["0", "-5", "1.00001"])
def test_invalid_amounts_are_rejected_before_the_ledger(client, session_factory, amount):
    product = product_id(session_factory, 1)
    batch = create_batch(client, product)

    response = client.post("/api/inventory/add", json={"product_id": product, "batch_id": batch["id"], "amount": amount})

    assert response.status_code == 422
    with session_factory() as db:
        assert db.query(LedgerEntry).count() == 0


def test_transfer_set_and_adjust_endpoints(client, session_factory):
    product = product_id(session_factory, 1)
    source = create_batch(client, product, number="LOT-1")
    target = create_batch(client, product, number="LOT-2")
    client.post("/api/inventory/add", json={"product_id": product, "batch_id": source["id"], "amount": "20"})

    transfer = client.post(
        "/api/inventory/transfer",
        json={"product_id": product, "from_batch_id": source["id"], "to_batch_id": target["id"], "amount": "20"},
    )
    assert transfer.status_code == 200, transfer.text
    body = transfer.json()
    assert Decimal(body["source"]["quantity"]) == Decimal("0")
    assert Decimal(body["destination"]["quantity"]) == Decimal("20")

    same = client.post(
        "/api/inventory/transfer",
        json={"product_id": product, "from_batch_id": source["id"], "to_batch_id": source["id"], "amount": "1"},
    )
    assert same.status_code == 400

    set_response = client.put(
        "/api/inventory/set", json={"product_id": product, "batch_id": target["id"], "quantity": "18"}
    )
    assert Decimal(set_response.json()["quantity"]) == Decimal("18")

    adjusted = client.post(
        "/api/inventory/adjustments",
        json={"product_id": product, "batch_id": target["id"], "quantity": "15", "notes": "Cycle count"},
    )
    assert Decimal(adjusted.json()["quantity"]) == Decimal("15")

    ledger = client.get(f"/api/inventory/products/{product}/ledger").json()
    assert [row["transaction_type"] for row in ledger] == ["ADJUSTMENT", "TRANSFER_IN", "TRANSFER_OUT", "IN"]
    assert Decimal(ledger[0]["quantity_delta"]) == Decimal("-3")


def test_position_and_availability_reads(client, session_factory):
    product = product_id(session_factory, 1)
    batch = create_batch(client, product)
    params = {"product_id": product, "batch_id": batch["id"]}

    assert client.get("/api/inventory/position", params=params).status_code == 404
    assert client.get("/api/inventory/availability", params={**params, "required_amount": "1"}).json()["available"] is False

    client.post("/api/inventory/add", json={**params, "amount": "5.5"})

    position = client.get("/api/inventory/position", params=params).json()
    assert Decimal(position["quantity"]) == Decimal("5.5")
    availability = client.get("/api/inventory/availability", params={**params, "required_amount": "5.5"}).json()
    assert availability["available"] is True
    listing = client.get("/api/inventory", params={"product_id": product}).json()
    assert [row["batch_id"] for row in listing] == [batch["id"]]


def test_batch_update_endpoint_is_partial(client, session_factory):
    product = product_id(session_factory, 1)
    batch = create_batch(client, product, expiry_date="2027-01-31")

    response = client.patch(f"/api/batches/{batch['id']}", json={"unit_cost": "3.1250"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert Decimal(body["unit_cost"]) == Decimal("3.125")
    assert body["expiry_date"] == "2027-01-31"
    assert body["batch_number"] == "LOT-1"


def test_report_endpoints(client, session_factory):
    product = product_id(session_factory, 1)
    low = create_batch(client, product, number="LOW", unit_cost="2.00")
    high = create_batch(client, product, number="HIGH", unit_cost="1.00")
    client.post("/api/inventory/add", json={"product_id": product, "batch_id": low["id"], "amount": "5"})
    client.post("/api/inventory/add", json={"product_id": product, "batch_id": high["id"], "amount": "15"})

    low_stock = client.get("/api/reports/low-stock", params={"threshold": "10"}).json()
    assert [row["batch_id"] for row in low_stock["items"]] == [low["id"]]

    valuation = client.get("/api/reports/valuation").json()
    assert Decimal(valuation["total_value"]) == Decimal("25")
    assert valuation["positions_count"] == 2

    top = client.get("/api/reports/top-moving", params={"window_days": 7}).json()
    assert [(row["product_id"], Decimal(row["total_movement"])) for row in top["items"]] == [(product, Decimal("20"))]

    expiring = client.get("/api/reports/expiring-batches").json()
    assert expiring == {"within_days": 30, "items": []}

    summary = client.get("/api/reports/summary").json()
    assert summary["total_products"] == 2
    assert summary["low_stock_count"] == 1
    assert Decimal(summary["total_value"]) == Decimal("25")


@pytest.mark.real_auth
def test_requests_without_token_are_unauthorized(client):
    response = client.get("/api/inventory")

    assert response.status_code == 401


@pytest.mark.real_auth
def test_bearer_token_scopes_requests_to_its_tenant(client, session_factory):
    token = jwt.encode({"sub": "42", "tenant_id": 2}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    headers = {"Authorization": f"Bearer {token}"}
    product = product_id(session_factory, 2)

    created = client.post(
        "/api/batches", json={"product_id": product, "batch_number": "T2", "unit_cost": "1"}, headers=headers
    )
    assert created.status_code == 201, created.text
    added = client.post(
        "/api/inventory/add",
        json={"product_id": product, "batch_id": created.json()["id"], "amount": "3"},
        headers=headers,
    )
    assert added.status_code == 200, added.text

    ledger = client.get(f"/api/batches/{created.json()['id']}/ledger", headers=headers).json()
    assert ledger[0]["actor_id"] == 42


@pytest.mark.real_auth
def test_token_without_tenant_claim_is_rejected(client):
    token = jwt.encode({"sub": "42"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    response = client.get("/api/inventory", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
