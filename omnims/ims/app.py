"""Inventory-management HTTP application and its command-line entry point."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Any

from flask import Flask, jsonify

from ..config import CONFIG_KEY_REDIS_ENDPOINT, load_config
from .cache import MemoryCache, connect_redis
from .database import Database
from .inventory import inventory_blueprint
from .resources import CACHE_KEY, DATABASE_KEY, HUBS, SELLERS, SKUS, TENANTS, WEBHOOKS, make_blueprint

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


def create_app(database: Database, cache: Any = None) -> Flask:
    """Build the application serving every inventory-management route."""
    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions[DATABASE_KEY] = database
    if cache is not None:
        app.extensions[CACHE_KEY] = cache

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    for spec in (TENANTS, SELLERS, HUBS, SKUS):
        app.register_blueprint(make_blueprint(spec))
    app.register_blueprint(inventory_blueprint())
    app.register_blueprint(make_blueprint(WEBHOOKS))
    return app


def main(argv: list[str] | None = None) -> int:
    """Load the configuration, connect storage and serve until stopped."""
    parser = argparse.ArgumentParser(prog="omnims-ims", description="Inventory management service")
    parser.add_argument(
        "--config",
        default=os.environ.get("CONFIG_PATH", "configs/config.yaml"),
        help="path of the YAML configuration file",
    )
    args = parser.parse_args(argv)

    config = load_config(args.config)
    level = _LOG_LEVELS.get(config.get_string("log.level").lower(), logging.INFO)
    logging.basicConfig(level=level)

    database = Database(config.get_string("database.path") or ":memory:")
    try:
        if config.get_string(CONFIG_KEY_REDIS_ENDPOINT):
            cache: Any = connect_redis(config)
        else:
            cache = MemoryCache()
        port = config.get_int("server.port")
        logger.info("Starting IMS server on port %d", port)
        app = create_app(database, cache)
        try:
            app.run(host="0.0.0.0", port=port, threaded=True)
        except Exception as exc:
            logger.error("Server shutdown with error: %s", exc)
            return 1
    finally:
        database.close()
    return 0