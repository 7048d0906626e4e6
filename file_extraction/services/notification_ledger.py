from __future__ import annotations

import json
import logging
from datetime import datetime

from botocore.client import BaseClient
from botocore.exceptions import ClientError

from file_extraction.services.s3_storage import delete_object, is_precondition_failed, put_object_bytes

logger = logging.getLogger(__name__)

LEDGER_PREFIX = "notifications/"


class NotificationLedger:
    """Exactly-once guard for delivery notifications.

    A marker object is created with a conditional write; the storage system
    lets only one concurrent writer succeed for a given key.
    """

    def __init__(self, *, s3_client: BaseClient, bucket: str, prefix: str = LEDGER_PREFIX) -> None:
        self.s3_client = s3_client
        self.bucket = bucket
        self.prefix = prefix.strip("/") + "/"

    def marker_key(self, base_name: str, job_id: str) -> str:
        return f"{self.prefix}{base_name}/{job_id}"

    def claim(self, base_name: str, job_id: str, *, claimed_at: datetime) -> bool:
        key = self.marker_key(base_name, job_id)
        body = json.dumps({"base_name": base_name, "job_id": job_id, "claimed_at": claimed_at.isoformat()})
        try:
            put_object_bytes(
                client=self.s3_client,
                bucket=self.bucket,
                key=key,
                body=body.encode("utf-8"),
                content_type="application/json",
                if_none_match="*",
            )
        except ClientError as exc:
            if is_precondition_failed(exc):
                logger.info("Notification already claimed key=%s", key)
                return False
            raise
        return True

    def release(self, base_name: str, job_id: str) -> None:
        key = self.marker_key(base_name, job_id)
        try:
            delete_object(client=self.s3_client, bucket=self.bucket, key=key)
        except ClientError as exc:
            logger.error("Failed to release notification claim key=%s: %s", key, exc)
