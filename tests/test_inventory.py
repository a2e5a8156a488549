import pytest
from flask import Flask

from omnims.ims.database import Database, NotFoundError
from omnims.ims.inventory import (
    InsufficientInventoryError,
    consume_inventory,
    inventory_blueprint,
)
from omnims.ims.models import Inventory
from omnims.ims.resources import DATABASE_KEY

KEY = {"tenant_id": "t1", "seller_id": "s1", "hub_code": "h1", "sku_code": "k1"}


@pytest.fixture
def database():
    db = Database(":memory:")
    yield db
    db.close()


@pytest.fixture
def stocked(database):
    return database.create(Inventory(quantity=10, **KEY))


@pytest.fixture
def client(database):
    app = Flask(__name__)
    app.extensions[DATABASE_KEY] = database
    app.register_blueprint(inventory_blueprint())
    return app.test_client()


def test_consume_reduces_stored_quantity(database, stocked):
    remaining = consume_inventory(database, quantity=3, **KEY)
    assert database.get(Inventory, stocked.id).quantity == remaining
    assert remaining + 3 == stocked.quantity


def test_consume_exact_quantity_leaves_zero(database, stocked):
    assert consume_inventory(database, quantity=stocked.quantity, **KEY) == 0


def test_consume_insufficient_leaves_row_unchanged(database, stocked):
    with pytest.raises(InsufficientInventoryError) as info:
        consume_inventory(database, quantity=stocked.quantity + 1, **KEY)
    assert info.value.available == stocked.quantity
    assert database.get(Inventory, stocked.id).quantity == stocked.quantity


def test_consume_missing_row(database, stocked):
    with pytest.raises(NotFoundError):
        consume_inventory(database, "t1", "s1", "h1", "other", 1)


def test_query_requires_all_params(client, stocked):
    response = client.get("/inventory/query", query_string={"tenant_id": "t1"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Missing required query params"}


def test_query_finds_row(client, stocked):
    response = client.get("/inventory/query", query_string=KEY)
    assert response.status_code == 200
    assert response.get_json()["id"] == stocked.id
    assert response.get_json()["quantity"] == stocked.quantity


def test_query_not_found(client, stocked):
    response = client.get("/inventory/query", query_string={**KEY, "hub_code": "zz"})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Inventory not found"}


def test_consume_endpoint(client, database, stocked):
    response = client.post("/inventory/consume", json={**KEY, "quantity": 4})
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Inventory consumed"
    assert body["remaining"] == database.get(Inventory, stocked.id).quantity


def test_consume_endpoint_insufficient(client, stocked):
    response = client.post("/inventory/consume", json={**KEY, "quantity": 1000})
    assert response.status_code == 409
    assert response.get_json() == {"error": "Insufficient inventory"}


def test_consume_endpoint_not_found(client, stocked):
    response = client.post("/inventory/consume", json={**KEY, "sku_code": "nope", "quantity": 1})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Inventory not found"}


@pytest.mark.parametrize(
    "payload",
    [b"", b"{not json", b'{"quantity": "3"}', b'{"quantity": 2.5}', b"[1, 2]"],
)
def test_consume_endpoint_rejects_bad_body(client, stocked, payload):
    response = client.post(
        "/inventory/consume", data=payload, content_type="application/json"
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid request"}


def test_crud_round_trip(client):
    created = client.post("/inventory", json={**KEY, "quantity": 5})
    assert created.status_code == 201
    record_id = created.get_json()["id"]

    fetched = client.get(f"/inventory/{record_id}")
    assert fetched.get_json()["sku_code"] == KEY["sku_code"]

    updated = client.put(f"/inventory/{record_id}", json={"quantity": 9})
    assert updated.get_json()["quantity"] == 9

    listed = client.get("/inventory")
    assert [row["id"] for row in listed.get_json()] == [record_id]

    assert client.delete(f"/inventory/{record_id}").status_code == 204
    missing = client.get(f"/inventory/{record_id}")
    assert missing.status_code == 404
    assert missing.get_json() == {"error": "Inventory not found"}