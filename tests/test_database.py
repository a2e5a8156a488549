import uuid

import pytest

from omnims.ims.database import Database, DatabaseError, NotFoundError
from omnims.ims.models import Hub, Inventory, Tenant, WebhookRegistration, ZERO_TIME


@pytest.fixture
def db():
    database = Database()
    yield database
    database.close()


def test_create_and_get(db):
    tenant = db.create(Tenant(tenant_id="t1", tenant_name="Acme"))
    assert tenant.id > 0
    assert tenant.created_at > ZERO_TIME
    assert tenant.updated_at > ZERO_TIME
    assert db.get(Tenant, tenant.id) == tenant
    assert db.get(Tenant, str(tenant.id)) == tenant


def test_unique_violation(db):
    db.create(Hub(tenant_id="t", seller_id="s", hub_code="H1"))
    with pytest.raises(DatabaseError):
        db.create(Hub(tenant_id="t", seller_id="s", hub_code="H1"))


def test_size_limit(db):
    with pytest.raises(DatabaseError):
        db.create(Hub(hub_code="x" * 101))


@pytest.mark.parametrize("record_id", [999, "abc"])
def test_get_missing(db, record_id):
    with pytest.raises(NotFoundError):
        db.get(Tenant, record_id)


def test_find_one(db):
    db.create(Inventory(tenant_id="t", seller_id="s", hub_code="H", sku_code="A", quantity=3))
    second = db.create(
        Inventory(tenant_id="t", seller_id="s", hub_code="H", sku_code="B", quantity=8)
    )
    found = db.find_one(Inventory, tenant_id="t", seller_id="s", hub_code="H", sku_code="B")
    assert found == second
    with pytest.raises(NotFoundError):
        db.find_one(Inventory, sku_code="Z")
    with pytest.raises(ValueError):
        db.find_one(Inventory, colour="red")


def test_list_in_id_order(db):
    created = [db.create(Tenant(tenant_id=name)) for name in ("a", "b", "c")]
    listed = db.list(Tenant)
    assert listed == created
    assert [t.id for t in listed] == sorted(t.id for t in listed)


def test_save_updates_record(db):
    hub = db.create(Hub(hub_code="H", hub_name="old"))
    before = hub.updated_at
    hub.hub_name = "new"
    db.save(hub)
    stored = db.get(Hub, hub.id)
    assert stored.hub_name == "new"
    assert stored.updated_at >= before
    assert stored.created_at == hub.created_at


def test_save_inserts_new_record(db):
    hub = db.save(Hub(hub_code="N"))
    assert db.get(Hub, hub.id).hub_code == "N"


def test_delete(db):
    tenant = db.create(Tenant(tenant_id="gone"))
    assert db.delete(Tenant, tenant.id) == 1
    assert db.delete(Tenant, tenant.id) == 0
    with pytest.raises(NotFoundError):
        db.get(Tenant, tenant.id)
    with pytest.raises(DatabaseError):
        db.delete(Tenant, "abc")


def test_webhook_gets_uuid_and_active_default(db):
    hook = db.create(WebhookRegistration(tenant_id="t", url="http://hook.example.com",
                                         event_type="order.created", is_active=False))
    assert str(uuid.UUID(hook.id)) == hook.id
    assert hook.is_active is True
    assert db.get(WebhookRegistration, hook.id) == hook
    with pytest.raises(DatabaseError):
        db.delete(WebhookRegistration, "not-a-uuid")


def test_transaction_rollback(db):
    with pytest.raises(RuntimeError):
        with db.transaction():
            db.create(Tenant(tenant_id="temp"))
            raise RuntimeError("abort")
    assert db.list(Tenant) == []


def test_transaction_commit_and_nesting(db):
    with db.transaction() as tx:
        tx.create(Tenant(tenant_id="one"))
        with tx.transaction():
            tx.create(Tenant(tenant_id="two"))
    assert [t.tenant_id for t in db.list(Tenant)] == ["one", "two"]


def test_persists_to_file(tmp_path):
    path = tmp_path / "ims.db"
    with Database(str(path)) as first:
        tenant = first.create(Tenant(tenant_id="kept"))
    with Database(str(path)) as second:
        assert second.get(Tenant, tenant.id) == tenant