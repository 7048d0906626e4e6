from file_extraction.config import (
    get_bitly_base_url,
    get_bitly_secret_id,
    get_extraction_mode,
    get_gateway_base_url,
    get_input_bucket_name,
    get_notify_on_failure,
    get_presigned_url_expires_sec,
    get_processed_bucket_name,
    get_require_confirmed_recipient,
    get_sns_topic_arn,
    get_textract_max_polls,
    get_textract_poll_interval_sec,
)
from file_extraction.pipeline import DeliveryNotifier, ExtractionOrchestrator, UploadIntake, UploadUrlIssuer
from file_extraction.services import (
    JobCheckpointStore,
    NotificationLedger,
    create_s3_client,
    create_secrets_client,
    create_sns_client,
    create_textract_client,
)


def ensure_input_bucket() -> str:
    bucket = get_input_bucket_name()
    if not bucket:
        raise ValueError("INPUT_BUCKET_NAME is not set")
    return bucket


def ensure_sns_topic_arn() -> str:
    topic_arn = get_sns_topic_arn()
    if not topic_arn:
        raise ValueError("SNS_TOPIC_ARN is not set")
    return topic_arn


def build_url_issuer() -> UploadUrlIssuer:
    return UploadUrlIssuer(
        s3_client=create_s3_client(),
        sns_client=create_sns_client(),
        bucket=ensure_input_bucket(),
        topic_arn=get_sns_topic_arn(),
        expires_in=get_presigned_url_expires_sec(),
        require_confirmed_recipient=get_require_confirmed_recipient(),
    )


def build_extraction_orchestrator(
    *,
    deferred: bool | None = None,
    checkpoint_bucket: str | None = None,
) -> ExtractionOrchestrator:
    """Orchestrator wired from the environment.

    Checkpoints live in the processed bucket, falling back to the bucket of
    the triggering event (`checkpoint_bucket`).
    """
    s3_client = create_s3_client()
    use_checkpoints = get_extraction_mode() == "deferred" if deferred is None else deferred
    checkpoints = None
    if use_checkpoints:
        bucket = get_processed_bucket_name() or checkpoint_bucket or get_input_bucket_name()
        if not bucket:
            raise ValueError("PROCESSED_BUCKET_NAME or INPUT_BUCKET_NAME must be set for deferred extraction")
        checkpoints = JobCheckpointStore(s3_client=s3_client, bucket=bucket)
    return ExtractionOrchestrator(
        s3_client=s3_client,
        textract_client=create_textract_client(),
        output_bucket=get_processed_bucket_name(),
        poll_interval_sec=get_textract_poll_interval_sec(),
        max_polls=get_textract_max_polls(),
        checkpoints=checkpoints,
        sns_client=create_sns_client(),
        topic_arn=get_sns_topic_arn(),
        notify_on_failure=get_notify_on_failure(),
    )


def build_delivery_notifier(*, event_bucket: str) -> DeliveryNotifier:
    s3_client = create_s3_client()
    bucket = get_processed_bucket_name() or event_bucket
    return DeliveryNotifier(
        s3_client=s3_client,
        sns_client=create_sns_client(),
        secrets_client=create_secrets_client(),
        ledger=NotificationLedger(s3_client=s3_client, bucket=bucket),
        topic_arn=ensure_sns_topic_arn(),
        secret_id=get_bitly_secret_id(),
        shortener_base_url=get_bitly_base_url(),
        bucket=bucket,
        expires_in=get_presigned_url_expires_sec(),
    )


def build_upload_intake() -> UploadIntake:
    api_url = get_gateway_base_url()
    if not api_url:
        raise ValueError("API_GATEWAY_URL is not set")
    return UploadIntake(api_url=api_url)
