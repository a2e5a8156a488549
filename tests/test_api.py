import json

import pytest

from omnims.oms.api import create_app
from omnims.oms.messaging import MessageQueue
from omnims.oms.objects import ObjectStore
from omnims.oms.orders import OrderService
from omnims.oms.storage import MemoryOrderStore

BUCKET = "orders"


class _FailingQueue:
    name = "broken"

    def publish(self, payload):
        raise RuntimeError("queue down")


class _FailingStore:
    def save_webhook(self, webhook):
        raise RuntimeError("store down")


@pytest.fixture
def env(tmp_path):
    objects = ObjectStore(tmp_path / "objects")
    queue = MessageQueue("bulk-orders")
    service = OrderService(objects, queue, BUCKET)
    store = MemoryOrderStore()
    upload_dir = tmp_path / "csv"
    upload_dir.mkdir()
    app = create_app(service, store, upload_dir)
    return {
        "client": app.test_client(),
        "objects": objects,
        "queue": queue,
        "store": store,
        "upload_dir": upload_dir,
    }


def test_health(env):
    response = env["client"].get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_create_bulk_order_queues_event(env):
    env["objects"].put(BUCKET, "uploads/a.csv", b"tenant_id\n")
    response = env["client"].post("/orders/csv", json={"path": "uploads/a.csv"})
    assert response.status_code == 200
    assert response.get_json() == {
        "message": "CSV file processed successfully (S3 path validated)"
    }
    messages = env["queue"].receive(10)
    assert [json.loads(m) for m in messages] == [{"Bucket": BUCKET, "Key": "uploads/a.csv"}]


@pytest.mark.parametrize("body", ['{}', '{"path": ""}', '{"path": 5}', "[1]", "", "not json"])
def test_create_bulk_order_rejects_bad_body(env, body):
    response = env["client"].post(
        "/orders/csv", data=body, content_type="application/json"
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid request: missing or bad path field"}
    assert env["queue"].receive(10) == []


def test_create_bulk_order_missing_object(env):
    response = env["client"].post("/orders/csv", json={"path": "uploads/missing.csv"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to process CSV file"}
    assert len(env["queue"]) == 0


def test_register_webhook_stores_active_webhook(env):
    payload = {
        "tenant_id": "T1",
        "callback_url": "http://hooks.example.com/cb",
        "events": ["order.created"],
        "headers": {"Authorization": "Bearer token"},
    }
    response = env["client"].post("/webhooks", json=payload)
    assert response.status_code == 201
    assert response.get_json() == {"message": "Webhook registered"}
    hooks = env["store"].webhooks_for("T1", "order.created")
    assert len(hooks) == 1
    assert hooks[0].callback_url == payload["callback_url"]
    assert hooks[0].headers == payload["headers"]
    assert hooks[0].is_active is True
    assert env["store"].webhooks_for("T1", "order.updated") == []


@pytest.mark.parametrize("body", ['{"events": "order.created"}', "", "[]"])
def test_register_webhook_invalid_payload(env, body):
    response = env["client"].post("/webhooks", data=body, content_type="application/json")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid payload"}


def test_register_webhook_store_failure(tmp_path):
    service = OrderService(ObjectStore(tmp_path), MessageQueue("q"), BUCKET)
    client = create_app(service, _FailingStore(), tmp_path).test_client()
    response = client.post("/webhooks", json={"tenant_id": "T1"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to save webhook"}


def test_upload_local_without_files(env):
    response = env["client"].post("/orders/upload-local")
    assert response.status_code == 200
    assert response.get_json() == {"message": "No CSV files found"}


def test_upload_local_uploads_and_queues(env):
    (env["upload_dir"] / "b.csv").write_bytes(b"second\n")
    (env["upload_dir"] / "a.csv").write_bytes(b"first\n")
    (env["upload_dir"] / "notes.txt").write_bytes(b"ignored\n")
    response = env["client"].post("/orders/upload-local")
    assert response.status_code == 202
    assert response.get_json() == {"uploaded": ["a.csv", "b.csv"], "failed": None}
    assert env["objects"].get(BUCKET, "uploads/a.csv") == b"first\n"
    assert env["objects"].get(BUCKET, "uploads/b.csv") == b"second\n"
    assert not env["objects"].exists(BUCKET, "uploads/notes.txt")
    keys = [json.loads(m)["Key"] for m in env["queue"].receive(10)]
    assert keys == ["uploads/a.csv", "uploads/b.csv"]


def test_upload_local_reports_failures(tmp_path):
    objects = ObjectStore(tmp_path / "objects")
    service = OrderService(objects, _FailingQueue(), BUCKET)
    upload_dir = tmp_path / "csv"
    upload_dir.mkdir()
    (upload_dir / "a.csv").write_bytes(b"x\n")
    client = create_app(service, MemoryOrderStore(), upload_dir).test_client()
    response = client.post("/orders/upload-local")
    assert response.status_code == 202
    assert response.get_json() == {"uploaded": None, "failed": ["a.csv"]}
    assert objects.get(BUCKET, "uploads/a.csv") == b"x\n"