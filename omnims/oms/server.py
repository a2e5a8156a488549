"""Order-management service wiring and its command-line entry point."""

from __future__ import annotations

import argparse
import logging
import os
import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from ..config import Config, load_config
from .api import create_app
from .csv_worker import CSVOrderHandler, run_csv_processor
from .finalizer import OrderFinalizer, start_order_finalizer
from .ims_client import IMSClient
from .messaging import EventBus, MessageQueue, queue_name
from .objects import ObjectStore
from .orders import OrderService
from .storage import MemoryOrderStore, MongoOrderStore, OrderStore

logger = logging.getLogger(__name__)

_DEFAULT_TOPIC = "order.created"
_DEFAULT_BATCH_SIZE = 10

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


@dataclass
class Services:
    """Everything the order-management service runs on, wired together."""

    objects: ObjectStore
    queue: MessageQueue
    bus: EventBus
    ims: IMSClient
    store: OrderStore
    order_service: OrderService
    csv_handler: CSVOrderHandler
    finalizer: OrderFinalizer
    topic: str
    upload_dir: Path
    batch_size: int


def build_services(config: Config) -> Services:
    """Create the stores, queue, event bus and workers described by ``config``.

    The order finalizer is subscribed to the order-created topic on the bus.
    Raises ValueError when the queue URL or the broker version is missing.
    """
    queue_url = config.get_string("sqs.bulk_order_queue_url")
    if not queue_url:
        raise ValueError("missing sqs.bulk_order_queue_url in config")
    if not config.get_string("kafka.version"):
        raise ValueError("Kafka version is missing in config")

    bucket = config.get_string("s3.bucket")
    objects = ObjectStore(config.get_string("s3.root") or "objects")
    queue = MessageQueue(queue_name(queue_url))
    logger.info("Queue initialized: %s", queue.name)
    bus = EventBus()
    topic = config.get_string("kafka.producer_topic") or _DEFAULT_TOPIC

    timeout = config.get_duration("ims.timeout")
    ims = IMSClient(
        config.get_string("ims.base_url"),
        timeout=timeout if timeout > timedelta(0) else None,
    )

    uri = config.get_string("mongodb.uri")
    store: OrderStore
    if uri:
        store = MongoOrderStore(uri, config.get_string("mongodb.database"))
    else:
        store = MemoryOrderStore()

    order_service = OrderService(objects, queue, bucket)
    csv_handler = CSVOrderHandler(ims, objects, store, bus, topic)
    finalizer = OrderFinalizer(ims, store)
    start_order_finalizer(bus, finalizer, topic)

    return Services(
        objects=objects,
        queue=queue,
        bus=bus,
        ims=ims,
        store=store,
        order_service=order_service,
        csv_handler=csv_handler,
        finalizer=finalizer,
        topic=topic,
        upload_dir=Path(config.get_string("oms.upload_dir") or "csv"),
        batch_size=config.get_int("sqs.consumer.batch_size") or _DEFAULT_BATCH_SIZE,
    )


def main(argv: list[str] | None = None) -> int:
    """Load the configuration, start the workers and serve until stopped."""
    parser = argparse.ArgumentParser(prog="omnims-oms", description="Order management service")
    parser.add_argument(
        "--config",
        default=os.environ.get("CONFIG_PATH", "configs/config.yaml"),
        help="path of the YAML configuration file",
    )
    args = parser.parse_args(argv)

    config = load_config(args.config)
    level = _LOG_LEVELS.get(config.get_string("log.level").lower(), logging.INFO)
    logging.basicConfig(level=level)
    port = config.get_int("server.port")
    logger.info("Starting OMS on port %d", port)

    services = build_services(config)
    stop = threading.Event()
    worker = threading.Thread(
        target=run_csv_processor,
        args=(services.queue, services.csv_handler, stop, services.batch_size),
        daemon=True,
    )
    worker.start()
    app = create_app(services.order_service, services.store, services.upload_dir)
    try:
        app.run(host="0.0.0.0", port=port, threaded=True)
    except Exception as exc:
        logger.error("OMS shutdown error: %s", exc)
        return 1
    finally:
        stop.set()
        worker.join(timeout=5)
        if isinstance(services.store, MongoOrderStore):
            services.store.close()
    return 0