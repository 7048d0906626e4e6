"""Event entrypoints, one per pipeline stage.

Every handler returns a `{statusCode, body}` envelope; exceptions never
escape to the invoking runtime.
"""

import json
import logging

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from file_extraction import factory
from file_extraction.logging_config import configure_logging
from file_extraction.schemas.events import StorageEvent
from file_extraction.schemas.results import CORS_HEADERS, StageResult
from file_extraction.schemas.uploads import UploadRequest

logger = logging.getLogger(__name__)

configure_logging()


def _parse_body(event: dict) -> dict:
    body = event.get("body") if isinstance(event, dict) else None
    if isinstance(body, str):
        return json.loads(body or "{}")
    if isinstance(body, dict):
        return body
    return {}


def issue_upload_url(event, context=None) -> dict:
    try:
        request = UploadRequest.model_validate(_parse_body(event))
    except (ValueError, ValidationError) as exc:
        logger.warning("Rejected upload URL request: %s", exc)
        return StageResult.fatal("fileName and email are required").to_envelope(CORS_HEADERS)

    try:
        issuer = factory.build_url_issuer()
    except (ValueError, BotoCoreError) as exc:
        logger.error("Upload URL issuer is misconfigured: %s", exc)
        return StageResult.fatal("Failed to generate URL or send notification").to_envelope(CORS_HEADERS)
    return issuer.issue(request).to_envelope(CORS_HEADERS)


def extract_text(event, context=None) -> dict:
    logger.info("Event received: %s", json.dumps(event, default=str))
    try:
        storage_event = StorageEvent.from_notification(event)
        orchestrator = factory.build_extraction_orchestrator(checkpoint_bucket=storage_event.bucket)
    except (ValueError, BotoCoreError) as exc:
        logger.error("Cannot process storage event: %s", exc)
        return StageResult.fatal(str(exc)).to_envelope()
    return orchestrator.handle(storage_event).to_envelope()


def poll_pending_jobs(event=None, context=None) -> dict:
    """Scheduled tick: run one status check for every persisted job."""
    try:
        orchestrator = factory.build_extraction_orchestrator(deferred=True)
        keys = orchestrator.checkpoints.list_keys()
    except (ValueError, BotoCoreError, ClientError) as exc:
        logger.error("Cannot list pending jobs: %s", exc)
        return StageResult.fatal(str(exc)).to_envelope()

    outcomes: dict[str, str] = {}
    for key in keys:
        try:
            checkpoint = orchestrator.checkpoints.load(key)
            outcomes[checkpoint.job_id] = orchestrator.resume(checkpoint).outcome.value
        except (BotoCoreError, ClientError, ValidationError) as exc:
            logger.error("Failed to resume job checkpoint key=%s: %s", key, exc)
            outcomes[key] = "error"
    logger.info("Checked %d pending jobs", len(keys))
    return StageResult.success("Pending jobs checked", jobs=outcomes).to_envelope()


def deliver_links(event, context=None) -> dict:
    logger.info("Event received: %s", json.dumps(event, default=str))
    try:
        storage_event = StorageEvent.from_notification(event)
        notifier = factory.build_delivery_notifier(event_bucket=storage_event.bucket)
    except (ValueError, BotoCoreError) as exc:
        logger.error("Cannot process storage event: %s", exc)
        return StageResult.fatal(str(exc)).to_envelope()
    return notifier.handle(storage_event).to_envelope()
