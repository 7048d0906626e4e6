from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from file_extraction.schemas.results import StageResult
from file_extraction.schemas.uploads import SignedAddress, UploadRequest
from file_extraction.services.artifacts import incoming_key
from file_extraction.services.s3_storage import generate_presigned_put_url
from file_extraction.services.sns_notifier import (
    is_recipient_confirmed,
    publish_message,
    request_recipient_subscription,
)

logger = logging.getLogger(__name__)

TAGGING_HEADER = "x-amz-tagging"
UPLOAD_SUBJECT = "File Upload Notification"
UNVERIFIED_MESSAGE = "The email provided is not verified. Please verify the email and resubmit."


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UploadUrlIssuer:
    def __init__(
        self,
        *,
        s3_client: BaseClient,
        sns_client: BaseClient,
        bucket: str,
        topic_arn: str | None,
        expires_in: int = 3600,
        require_confirmed_recipient: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.s3_client = s3_client
        self.sns_client = sns_client
        self.bucket = bucket
        self.topic_arn = topic_arn
        self.expires_in = expires_in
        self.require_confirmed_recipient = require_confirmed_recipient
        self.clock = clock

    def sign_upload(self, request: UploadRequest) -> SignedAddress:
        minted_at = self.clock()
        url = generate_presigned_put_url(
            client=self.s3_client,
            bucket=self.bucket,
            key=incoming_key(request.file_name),
            tagging=f"email={request.email}",
            expires_in=self.expires_in,
        )
        return SignedAddress(
            url=url,
            expires_at=minted_at + timedelta(seconds=self.expires_in),
            bound_headers=frozenset({TAGGING_HEADER}),
        )

    def issue(self, request: UploadRequest) -> StageResult:
        """Issue a tag-bound upload URL for `incoming/<fileName>`.

        Three outcomes: URL issued (success), accepted but suppressed for an
        unverified recipient (user rejected, null URL), failed (fatal).
        """
        try:
            if self.require_confirmed_recipient and not self._recipient_confirmed(request.email):
                return StageResult.rejected(UNVERIFIED_MESSAGE, preSignedURL=None)
            address = self.sign_upload(request)
        except (BotoCoreError, ClientError, ValueError) as exc:
            logger.error("Failed to generate upload URL file=%s: %s", request.file_name, exc)
            return StageResult.fatal("Failed to generate URL or send notification")

        logger.info("Issued upload URL key=%s expires_at=%s", incoming_key(request.file_name), address.expires_at)
        notified = self._announce_upload(request.file_name)
        message = (
            "Pre-signed URL generated and notification sent"
            if notified
            else "Pre-signed URL generated; upload notification could not be sent"
        )
        return StageResult.success(
            message,
            preSignedURL=address.url,
            expiresAt=address.expires_at.isoformat(),
        )

    def _recipient_confirmed(self, email: str) -> bool:
        if not self.topic_arn:
            return False
        if is_recipient_confirmed(client=self.sns_client, topic_arn=self.topic_arn, email=email):
            return True
        logger.info("Recipient is not confirmed, requesting subscription email=%s", email)
        try:
            request_recipient_subscription(client=self.sns_client, topic_arn=self.topic_arn, email=email)
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Subscription request failed email=%s: %s", email, exc)
        return False

    def _announce_upload(self, file_name: str) -> bool:
        if not self.topic_arn:
            logger.warning("No notification topic configured, skipping upload notification")
            return False
        try:
            publish_message(
                client=self.sns_client,
                topic_arn=self.topic_arn,
                message=f"A new file has been uploaded: {file_name}",
                subject=UPLOAD_SUBJECT,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Upload notification failed file=%s: %s", file_name, exc)
            return False
        return True
