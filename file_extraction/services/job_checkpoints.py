from __future__ import annotations

from botocore.client import BaseClient

from file_extraction.schemas.jobs import JobCheckpoint
from file_extraction.services.s3_storage import (
    delete_object,
    get_object_bytes,
    list_object_keys,
    put_object_bytes,
)

CHECKPOINT_PREFIX = "jobs/"


class JobCheckpointStore:
    """Persisted text-detection jobs awaiting a scheduled status check."""

    def __init__(self, *, s3_client: BaseClient, bucket: str, prefix: str = CHECKPOINT_PREFIX) -> None:
        self.s3_client = s3_client
        self.bucket = bucket
        self.prefix = prefix.strip("/") + "/"

    def key_for(self, job_id: str) -> str:
        return f"{self.prefix}{job_id}.json"

    def save(self, checkpoint: JobCheckpoint) -> None:
        put_object_bytes(
            client=self.s3_client,
            bucket=self.bucket,
            key=self.key_for(checkpoint.job_id),
            body=checkpoint.model_dump_json().encode("utf-8"),
            content_type="application/json",
        )

    def load(self, key: str) -> JobCheckpoint:
        raw = get_object_bytes(client=self.s3_client, bucket=self.bucket, key=key)
        return JobCheckpoint.model_validate_json(raw)

    def list_keys(self) -> list[str]:
        keys = list_object_keys(client=self.s3_client, bucket=self.bucket, prefix=self.prefix)
        return [key for key in keys if key.endswith(".json")]

    def delete(self, job_id: str) -> None:
        delete_object(client=self.s3_client, bucket=self.bucket, key=self.key_for(job_id))
