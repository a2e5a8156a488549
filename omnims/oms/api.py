"""HTTP endpoints of the order-management service."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from flask import Flask, jsonify, request

from .models import _lookup, webhook_from_json
from .orders import OrderServiceError

logger = logging.getLogger(__name__)


def _read_json() -> Any:
    """Decode the request body; raise ValueError when it is empty or not JSON."""
    raw = request.get_data()
    if not raw.strip():
        raise ValueError("empty body")
    return json.loads(raw)


def _bind_path() -> str:
    data = _read_json()
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    value = _lookup(data, "path")
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValueError("field 'path' is not a string")
    if not value:
        raise ValueError("field 'path' is required")
    return value


def create_app(service: Any, store: Any, upload_dir: str | os.PathLike[str]) -> Flask:
    """Build the application serving bulk order uploads and webhook registration."""
    app = Flask(__name__)
    app.json.sort_keys = False
    folder = Path(upload_dir)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    @app.post("/orders/csv")
    def create_bulk_order():
        try:
            path = _bind_path()
        except ValueError as exc:
            logger.warning("Invalid request body: %s", exc)
            return jsonify({"error": "Invalid request: missing or bad path field"}), 400
        try:
            service.process_csv(path)
        except OrderServiceError as exc:
            logger.error("Failed to process CSV: %s", exc)
            return jsonify({"error": "Failed to process CSV file"}), 500
        return jsonify({"message": "CSV file processed successfully (S3 path validated)"}), 200

    @app.post("/orders/upload-local")
    def upload_local_csvs():
        try:
            files = sorted(folder.glob("*.csv"))
        except OSError as exc:
            logger.error("Failed to list local CSVs: %s", exc)
            return jsonify({"error": "Failed to read local folder"}), 500
        if not files:
            return jsonify({"message": "No CSV files found"}), 200

        uploaded: list[str] = []
        failed: list[str] = []
        for file_path in files:
            name = file_path.name
            key = f"uploads/{name}"
            logger.info("Uploading file: local=%s -> key=%s bucket=%s", file_path, key, service.bucket)
            try:
                with open(file_path, "rb") as handle:
                    service.objects.put(service.bucket, key, handle)
            except (OSError, ValueError, TypeError) as exc:
                logger.warning("Upload failed for %s: %s", name, exc)
                failed.append(name)
                continue
            logger.info("Uploaded to S3: %s", key)
            try:
                service.process_csv(key)
            except OrderServiceError as exc:
                logger.warning("Validation failed for %s: %s", name, exc)
                failed.append(name)
                continue
            uploaded.append(name)

        return jsonify({"uploaded": uploaded or None, "failed": failed or None}), 202

    @app.post("/webhooks")
    def register_webhook():
        try:
            webhook = webhook_from_json(_read_json())
        except ValueError as exc:
            logger.warning("Invalid webhook request: %s", exc)
            return jsonify({"error": "Invalid payload"}), 400
        try:
            store.save_webhook(webhook)
        except Exception as exc:
            logger.error("Failed to save webhook: %s", exc)
            return jsonify({"error": "Failed to save webhook"}), 500
        return jsonify({"message": "Webhook registered"}), 201

    return app