import pytest

from omnims.oms.models import Order, Webhook
from omnims.oms.storage import MemoryOrderStore, OrderNotFoundError


def _order():
    return Order(tenant_id="t1", seller_id="s1", hub_id="H1", sku_id="SKU1", quantity=2)


def test_save_order_assigns_id_and_status():
    store = MemoryOrderStore()
    order = store.save_order(_order())
    assert order.id
    assert order.status == "on_hold"
    assert store.get_order(order.id) == order


def test_save_order_ids_are_distinct():
    store = MemoryOrderStore()
    first = store.save_order(_order())
    second = store.save_order(_order())
    assert first.id != second.id
    assert store.get_order(second.id).quantity == 2


def test_update_order_status():
    store = MemoryOrderStore()
    order = store.save_order(_order())
    store.update_order_status(order.id, "new_order")
    assert store.get_order(order.id).status == "new_order"


def test_update_unknown_order_raises():
    store = MemoryOrderStore()
    with pytest.raises(OrderNotFoundError, match="no order found with ID missing"):
        store.update_order_status("missing", "new_order")


def test_get_unknown_order_raises():
    with pytest.raises(OrderNotFoundError):
        MemoryOrderStore().get_order("missing")


def test_returned_order_is_a_copy():
    store = MemoryOrderStore()
    order = store.save_order(_order())
    loaded = store.get_order(order.id)
    loaded.status = "changed"
    assert store.get_order(order.id).status == "on_hold"


def test_save_webhook_marks_active():
    store = MemoryOrderStore()
    hook = store.save_webhook(Webhook(tenant_id="t1", events=["order.created"]))
    assert hook.is_active is True
    assert hook.id
    assert hook.created_at == hook.updated_at


def test_webhooks_for_filters_tenant_and_event():
    store = MemoryOrderStore()
    wanted = store.save_webhook(
        Webhook(tenant_id="t1", callback_url="http://hooks.example.com/a",
                events=["order.created", "order.updated"], headers={"X-Auth": "token"})
    )
    store.save_webhook(Webhook(tenant_id="t2", events=["order.created"]))
    store.save_webhook(Webhook(tenant_id="t1", events=["order.updated"]))
    found = store.webhooks_for("t1", "order.created")
    assert found == [wanted]


def test_webhooks_for_none_registered():
    assert MemoryOrderStore().webhooks_for("t1", "order.created") == []