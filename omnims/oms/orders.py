"""Bulk order intake: validate an uploaded CSV and queue it for processing."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class OrderServiceError(Exception):
    """A bulk order upload could not be accepted."""


class OrderService:
    """Checks that an uploaded file exists and queues it for the CSV worker."""

    def __init__(self, objects: Any, queue: Any, bucket: str):
        self.objects = objects
        self.queue = queue
        self.bucket = bucket

    def process_csv(self, s3_path: str) -> bytes:
        """Validate ``s3_path`` in the bucket and publish the event; return its payload."""
        logger.info("Validating S3 path: %s", s3_path)
        try:
            found = self.objects.exists(self.bucket, s3_path)
        except Exception as exc:
            logger.error("S3 HeadObject failed: %s", exc)
            raise OrderServiceError(f"failed to validate S3 path {s3_path}: {exc}") from exc
        if not found:
            logger.error("S3 HeadObject failed: %s not found", s3_path)
            raise OrderServiceError(f"failed to validate S3 path {s3_path}: not found")
        logger.info("S3 file exists: %s", s3_path)

        payload = json.dumps(
            {"Bucket": self.bucket, "Key": s3_path}, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
        try:
            self.queue.publish(payload)
        except Exception as exc:
            logger.error("Failed to publish SQS event: %s", exc)
            raise OrderServiceError(f"failed to publish event to SQS: {exc}") from exc
        logger.info("CreateBulkOrderEvent published to SQS: %s", payload.decode("utf-8"))
        return payload