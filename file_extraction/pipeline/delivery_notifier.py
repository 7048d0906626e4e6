from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from file_extraction.schemas.events import StorageEvent
from file_extraction.schemas.jobs import DownloadLink
from file_extraction.schemas.results import StageResult
from file_extraction.services.artifacts import (
    JOB_ID_METADATA_KEY,
    artifact_base_name,
    is_artifact_key,
    sibling_keys,
)
from file_extraction.services.link_shortener import shorten_url
from file_extraction.services.notification_ledger import NotificationLedger
from file_extraction.services.s3_storage import (
    generate_presigned_get_url,
    get_object_tags,
    head_object_or_none,
)
from file_extraction.services.secrets import SecretRetrievalError, get_bitly_access_token
from file_extraction.services.sns_notifier import publish_message

logger = logging.getLogger(__name__)

DOWNLOAD_SUBJECT = "Your extracted files are ready"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def describe_duration(seconds: int) -> str:
    """`3600` -> `1 hour`, `900` -> `15 minutes`, `90` -> `90 seconds`."""
    for unit_seconds, unit in ((3600, "hour"), (60, "minute")):
        if seconds >= unit_seconds and seconds % unit_seconds == 0:
            count = seconds // unit_seconds
            return f"{count} {unit}" if count == 1 else f"{count} {unit}s"
    return f"{seconds} second" if seconds == 1 else f"{seconds} seconds"


def compose_download_message(*, text_link: DownloadLink, csv_link: DownloadLink, expires_in: int) -> str:
    return (
        "Your document has been processed successfully. "
        "You can download the files using the links below:\n"
        "\n"
        f"Text File: {text_link.short_url}\n"
        f"CSV File: {csv_link.short_url}\n"
        "\n"
        f"The links will expire in {describe_duration(expires_in)}.\n"
    )


class DeliveryNotifier:
    def __init__(
        self,
        *,
        s3_client: BaseClient,
        sns_client: BaseClient,
        secrets_client: BaseClient,
        ledger: NotificationLedger,
        topic_arn: str,
        secret_id: str = "bitly_access_token",
        shortener_base_url: str = "https://api-ssl.bitly.com/v4",
        bucket: str | None = None,
        expires_in: int = 3600,
        shorten: Callable[..., str] = shorten_url,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.s3_client = s3_client
        self.sns_client = sns_client
        self.secrets_client = secrets_client
        self.ledger = ledger
        self.topic_arn = topic_arn
        self.secret_id = secret_id
        self.shortener_base_url = shortener_base_url
        self.bucket = bucket
        self.expires_in = expires_in
        self.shorten = shorten
        self.clock = clock

    def handle(self, event: StorageEvent) -> StageResult:
        if not is_artifact_key(event.key):
            logger.info("Key is not a processed artifact, skipping key=%s", event.key)
            return StageResult.success("Object is not a processed artifact", skipped=True)

        bucket = self.bucket or event.bucket
        base_name = artifact_base_name(event.key)
        text_key, csv_key = sibling_keys(event.key)

        try:
            job_id = self._completed_pair_job_id(bucket, text_key, csv_key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to inspect artifact pair base=%s: %s", base_name, exc)
            return StageResult.retryable(f"Failed to inspect artifact pair: {exc}")
        if job_id is None:
            logger.warning("Artifact pair incomplete, not notifying base=%s", base_name)
            return StageResult.retryable("Artifact pair incomplete", textKey=text_key, csvKey=csv_key)

        try:
            claimed = self.ledger.claim(base_name, job_id, claimed_at=self.clock())
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to claim notification base=%s: %s", base_name, exc)
            return StageResult.retryable(f"Failed to claim notification: {exc}")
        if not claimed:
            return StageResult.success("Notification already sent for this job", skipped=True, jobId=job_id)

        try:
            result = self._notify(bucket, text_key, csv_key, job_id)
        except Exception:
            logger.exception("Unexpected error while notifying job_id=%s", job_id)
            self.ledger.release(base_name, job_id)
            return StageResult.fatal("Failed to process the request.", jobId=job_id)
        if not result.ok:
            self.ledger.release(base_name, job_id)
        return result

    def mint_link(self, *, bucket: str, key: str, access_token: str) -> DownloadLink:
        minted_at = self.clock()
        long_url = generate_presigned_get_url(
            client=self.s3_client,
            bucket=bucket,
            key=key,
            expires_in=self.expires_in,
            content_disposition="attachment",
        )
        short_url = self.shorten(long_url=long_url, access_token=access_token, base_url=self.shortener_base_url)
        return DownloadLink(
            long_url=long_url,
            short_url=short_url,
            expires_at=minted_at + timedelta(seconds=self.expires_in),
        )

    def _completed_pair_job_id(self, bucket: str, text_key: str, csv_key: str) -> str | None:
        """Job id shared by both artifacts, or None while the pair is incomplete."""
        text_head = head_object_or_none(client=self.s3_client, bucket=bucket, key=text_key)
        csv_head = head_object_or_none(client=self.s3_client, bucket=bucket, key=csv_key)
        if text_head is None or csv_head is None:
            return None

        text_job = (text_head.get("Metadata") or {}).get(JOB_ID_METADATA_KEY)
        csv_job = (csv_head.get("Metadata") or {}).get(JOB_ID_METADATA_KEY)
        if text_job or csv_job:
            return text_job if text_job == csv_job else None
        # Artifacts written without job metadata: identify the pair by content.
        text_etag = str(text_head.get("ETag", "")).strip('"')
        csv_etag = str(csv_head.get("ETag", "")).strip('"')
        return f"{text_etag}-{csv_etag}"

    def _notify(self, bucket: str, text_key: str, csv_key: str, job_id: str) -> StageResult:
        try:
            access_token = get_bitly_access_token(client=self.secrets_client, secret_id=self.secret_id)
        except SecretRetrievalError as exc:
            logger.error("Error retrieving Bitly access token: %s", exc)
            return StageResult.fatal("Failed to retrieve link-shortener credential")

        try:
            tags = get_object_tags(client=self.s3_client, bucket=bucket, key=text_key)
            recipient = tags.get("email")
            if not recipient:
                logger.error("Artifact has no email tag, cannot notify key=%s", text_key)
                return StageResult.fatal("No recipient recorded for this document")

            text_link = self.mint_link(bucket=bucket, key=text_key, access_token=access_token)
            csv_link = self.mint_link(bucket=bucket, key=csv_key, access_token=access_token)
            logger.info(
                "Minted download links job_id=%s text_shortened=%s csv_shortened=%s",
                job_id,
                text_link.shortened,
                csv_link.shortened,
            )

            message = compose_download_message(text_link=text_link, csv_link=csv_link, expires_in=self.expires_in)
            message_id = publish_message(
                client=self.sns_client,
                topic_arn=self.topic_arn,
                message=message,
                subject=DOWNLOAD_SUBJECT,
                recipient=recipient,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Error processing the request job_id=%s: %s", job_id, exc)
            return StageResult.fatal("Failed to process the request.")

        logger.info("Notification sent with download links job_id=%s message_id=%s", job_id, message_id)
        return StageResult.success(
            "Notification sent successfully.",
            jobId=job_id,
            messageId=message_id,
            textUrl=text_link.short_url,
            csvUrl=csv_link.short_url,
            expiresAt=text_link.expires_at.isoformat(),
        )
