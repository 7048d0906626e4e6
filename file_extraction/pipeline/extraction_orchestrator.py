"""Extraction stage: raw upload -> text-detection job -> text/CSV artifact pair.

Two ways to wait for the job:

  inline    the invocation polls every `poll_interval_sec` until the job is
            terminal or `max_polls` checks have been made.
  deferred  the invocation starts the job and persists a checkpoint; a
            scheduled trigger calls `resume()` once per tick for each
            checkpoint until it is terminal or exhausted.

Jobs that end unsuccessfully, or run out of checks, are dead-lettered: a JSON
record is written under `dead-letter/` and the uploader is told, when known.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from urllib.parse import urlencode

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from file_extraction.schemas.events import StorageEvent
from file_extraction.schemas.jobs import ArtifactPair, JobCheckpoint, JobStatus, TextDetectionJob
from file_extraction.schemas.results import StageResult
from file_extraction.services.artifacts import (
    INCOMING_PREFIX,
    JOB_ID_METADATA_KEY,
    is_incoming_key,
    processed_keys,
    render_csv,
    render_text,
)
from file_extraction.services.job_checkpoints import JobCheckpointStore
from file_extraction.services.s3_storage import (
    build_storage_key,
    get_object_tags,
    is_missing_object_error,
    put_object_bytes,
)
from file_extraction.services.sns_notifier import publish_message
from file_extraction.services.textract_client import (
    TextDetectionError,
    fetch_text_detection,
    start_text_detection,
)

logger = logging.getLogger(__name__)

DEAD_LETTER_PREFIX = "dead-letter/"
FAILURE_SUBJECT = "File Extraction Failed"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ExtractionOrchestrator:
    def __init__(
        self,
        *,
        s3_client: BaseClient,
        textract_client: BaseClient,
        output_bucket: str | None = None,
        poll_interval_sec: float = 5.0,
        max_polls: int = 120,
        checkpoints: JobCheckpointStore | None = None,
        sns_client: BaseClient | None = None,
        topic_arn: str | None = None,
        notify_on_failure: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.s3_client = s3_client
        self.textract_client = textract_client
        self.output_bucket = output_bucket
        self.poll_interval_sec = poll_interval_sec
        self.max_polls = max(1, max_polls)
        self.checkpoints = checkpoints
        self.sns_client = sns_client
        self.topic_arn = topic_arn
        self.notify_on_failure = notify_on_failure
        self.sleep = sleep
        self.clock = clock

    @property
    def deferred(self) -> bool:
        return self.checkpoints is not None

    def handle(self, event: StorageEvent) -> StageResult:
        if not is_incoming_key(event.key):
            logger.info("Key is not under %s, skipping key=%s", INCOMING_PREFIX, event.key)
            return StageResult.success("Object is not an incoming upload", skipped=True)

        logger.info("Starting text detection for %s", build_storage_key(event.bucket, event.key))
        try:
            job_id = start_text_detection(client=self.textract_client, bucket=event.bucket, key=event.key)
        except (BotoCoreError, ClientError, TextDetectionError) as exc:
            logger.error("Failed to start text detection key=%s: %s", event.key, exc)
            return StageResult.retryable(f"Failed to start text detection: {exc}")

        checkpoint = JobCheckpoint(job_id=job_id, bucket=event.bucket, raw_key=event.key, started_at=self.clock())
        if self.deferred:
            try:
                self.checkpoints.save(checkpoint)
            except (BotoCoreError, ClientError) as exc:
                logger.error("Failed to persist job checkpoint job_id=%s: %s", job_id, exc)
                return StageResult.retryable(f"Failed to persist job checkpoint: {exc}")
            logger.info("Text detection job deferred job_id=%s key=%s", job_id, event.key)
            return StageResult.success("Text detection job started", jobId=job_id)

        return self._poll_inline(checkpoint)

    def resume(self, checkpoint: JobCheckpoint) -> StageResult:
        """Run one scheduled status check for a persisted job."""
        attempt = checkpoint.attempt + 1
        try:
            job = fetch_text_detection(client=self.textract_client, job_id=checkpoint.job_id)
        except (BotoCoreError, ClientError, TextDetectionError) as exc:
            logger.error("Status check failed job_id=%s attempt=%d: %s", checkpoint.job_id, attempt, exc)
            return self._retry_later(
                checkpoint,
                attempt,
                StageResult.retryable(f"Status check failed: {exc}", jobId=checkpoint.job_id, attempt=attempt),
            )

        logger.info("Text detection job_id=%s status=%s attempt=%d", job.job_id, job.status.value, attempt)
        if job.status is JobStatus.IN_PROGRESS:
            return self._retry_later(
                checkpoint,
                attempt,
                StageResult.success("Text detection job still in progress", jobId=job.job_id, attempt=attempt),
            )

        result = self._finish(checkpoint, job)
        if result.ok or result.data.get("deadLettered"):
            self._drop_checkpoint(checkpoint)
            return result
        return self._retry_later(checkpoint, attempt, result)

    def write_artifacts(
        self,
        *,
        bucket: str,
        raw_key: str,
        lines: list[str],
        job_id: str,
        recipient: str | None = None,
    ) -> ArtifactPair:
        """Write the text and CSV renderings of `lines`; text first, then CSV."""
        text_key, csv_key = processed_keys(raw_key)
        tagging = urlencode({"email": recipient}) if recipient else None
        metadata = {JOB_ID_METADATA_KEY: job_id}
        put_object_bytes(
            client=self.s3_client,
            bucket=bucket,
            key=text_key,
            body=render_text(lines).encode("utf-8"),
            content_type="text/plain",
            tagging=tagging,
            metadata=metadata,
        )
        put_object_bytes(
            client=self.s3_client,
            bucket=bucket,
            key=csv_key,
            body=render_csv(lines).encode("utf-8"),
            content_type="text/csv",
            tagging=tagging,
            metadata=metadata,
        )
        logger.info("Processed files saved at: %s and %s", text_key, csv_key)
        return ArtifactPair(bucket=bucket, text_key=text_key, csv_key=csv_key)

    def _poll_inline(self, checkpoint: JobCheckpoint) -> StageResult:
        for attempt in range(1, self.max_polls + 1):
            try:
                job = fetch_text_detection(client=self.textract_client, job_id=checkpoint.job_id)
            except (BotoCoreError, ClientError, TextDetectionError) as exc:
                logger.error("Status check failed job_id=%s: %s", checkpoint.job_id, exc)
                return StageResult.retryable(f"Status check failed: {exc}", jobId=checkpoint.job_id)

            logger.info("Text detection job_id=%s status=%s attempt=%d", job.job_id, job.status.value, attempt)
            if job.status.is_terminal:
                return self._finish(checkpoint, job)
            if attempt < self.max_polls:
                self.sleep(self.poll_interval_sec)

        return self._dead_letter(checkpoint, f"job still in progress after {self.max_polls} checks")

    def _finish(self, checkpoint: JobCheckpoint, job: TextDetectionJob) -> StageResult:
        if job.status is not JobStatus.SUCCEEDED:
            reason = f"Text detection job failed with status: {job.status.value}"
            if job.status_message:
                reason = f"{reason} ({job.status_message})"
            return self._dead_letter(checkpoint, reason, fatal=True)

        bucket = self.output_bucket or checkpoint.bucket
        try:
            recipient = self._recipient_for(checkpoint)
            pair = self.write_artifacts(
                bucket=bucket,
                raw_key=checkpoint.raw_key,
                lines=job.lines,
                job_id=job.job_id,
                recipient=recipient,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to write artifacts key=%s: %s", checkpoint.raw_key, exc)
            return StageResult.retryable(f"Failed to write artifacts: {exc}", jobId=job.job_id)

        return StageResult.success(
            "Text extracted",
            jobId=job.job_id,
            textKey=pair.text_key,
            csvKey=pair.csv_key,
            lineCount=len(job.lines),
        )

    def _recipient_for(self, checkpoint: JobCheckpoint) -> str | None:
        try:
            tags = get_object_tags(client=self.s3_client, bucket=checkpoint.bucket, key=checkpoint.raw_key)
        except ClientError as exc:
            if is_missing_object_error(exc):
                logger.warning("Raw object vanished before tagging lookup key=%s", checkpoint.raw_key)
                return None
            raise
        recipient = tags.get("email")
        if not recipient:
            logger.warning("Raw object has no email tag key=%s", checkpoint.raw_key)
        return recipient or None

    def _dead_letter(self, checkpoint: JobCheckpoint, reason: str, *, fatal: bool = False) -> StageResult:
        logger.error("Dead-lettering job_id=%s key=%s: %s", checkpoint.job_id, checkpoint.raw_key, reason)
        bucket = self.output_bucket or checkpoint.bucket
        file_name = checkpoint.raw_key
        if is_incoming_key(file_name):
            file_name = file_name[len(INCOMING_PREFIX):]
        record = {
            "job_id": checkpoint.job_id,
            "source": build_storage_key(checkpoint.bucket, checkpoint.raw_key),
            "reason": reason,
            "started_at": checkpoint.started_at.isoformat(),
            "failed_at": self.clock().isoformat(),
        }
        try:
            put_object_bytes(
                client=self.s3_client,
                bucket=bucket,
                key=f"{DEAD_LETTER_PREFIX}{file_name}.json",
                body=json.dumps(record).encode("utf-8"),
                content_type="application/json",
            )
            self._notify_failure(checkpoint, file_name)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to dead-letter job_id=%s: %s", checkpoint.job_id, exc)

        if fatal:
            return StageResult.fatal(reason, jobId=checkpoint.job_id, deadLettered=True)
        return StageResult.retryable(reason, jobId=checkpoint.job_id, deadLettered=True)

    def _notify_failure(self, checkpoint: JobCheckpoint, file_name: str) -> None:
        if not self.notify_on_failure or self.sns_client is None or not self.topic_arn:
            return
        recipient = self._recipient_for(checkpoint)
        if not recipient:
            return
        publish_message(
            client=self.sns_client,
            topic_arn=self.topic_arn,
            message=f"We could not extract text from your document {file_name}. Please try uploading it again.",
            subject=FAILURE_SUBJECT,
            recipient=recipient,
        )

    def _retry_later(self, checkpoint: JobCheckpoint, attempt: int, result: StageResult) -> StageResult:
        """Charge this tick to the checkpoint; dead-letter it once `max_polls` ticks are spent."""
        if attempt >= self.max_polls:
            if result.ok:
                reason = f"job still in progress after {attempt} checks"
            else:
                reason = f"job not completed after {attempt} checks: {result.message}"
            dead = self._dead_letter(checkpoint, reason)
            self._drop_checkpoint(checkpoint)
            return dead

        if self.checkpoints is not None:
            try:
                self.checkpoints.save(checkpoint.model_copy(update={"attempt": attempt}))
            except (BotoCoreError, ClientError) as exc:
                logger.error("Failed to update job checkpoint job_id=%s: %s", checkpoint.job_id, exc)
        return result

    def _drop_checkpoint(self, checkpoint: JobCheckpoint) -> None:
        if self.checkpoints is None:
            return
        try:
            self.checkpoints.delete(checkpoint.job_id)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to delete job checkpoint job_id=%s: %s", checkpoint.job_id, exc)
