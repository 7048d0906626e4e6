from file_extraction.services.artifacts import (
    artifact_base_name,
    incoming_key,
    is_artifact_key,
    is_incoming_key,
    processed_keys,
    render_csv,
    render_text,
    sibling_keys,
)
from file_extraction.services.job_checkpoints import JobCheckpointStore
from file_extraction.services.link_shortener import request_short_link, shorten_url
from file_extraction.services.notification_ledger import NotificationLedger
from file_extraction.services.s3_storage import (
    build_storage_key,
    create_aws_client,
    create_s3_client,
    delete_object,
    generate_presigned_get_url,
    generate_presigned_put_url,
    get_object_bytes,
    get_object_tags,
    head_object_or_none,
    list_object_keys,
    put_object_bytes,
)
from file_extraction.services.secrets import SecretRetrievalError, create_secrets_client, get_bitly_access_token
from file_extraction.services.sns_notifier import (
    create_sns_client,
    is_recipient_confirmed,
    publish_message,
    request_recipient_subscription,
)
from file_extraction.services.textract_client import (
    TextDetectionError,
    create_textract_client,
    extract_line_texts,
    fetch_text_detection,
    map_job_status,
    start_text_detection,
)

__all__ = [
    "artifact_base_name",
    "incoming_key",
    "is_artifact_key",
    "is_incoming_key",
    "processed_keys",
    "render_csv",
    "render_text",
    "sibling_keys",
    "JobCheckpointStore",
    "request_short_link",
    "shorten_url",
    "NotificationLedger",
    "build_storage_key",
    "create_aws_client",
    "create_s3_client",
    "delete_object",
    "generate_presigned_get_url",
    "generate_presigned_put_url",
    "get_object_bytes",
    "get_object_tags",
    "head_object_or_none",
    "list_object_keys",
    "put_object_bytes",
    "SecretRetrievalError",
    "create_secrets_client",
    "get_bitly_access_token",
    "create_sns_client",
    "is_recipient_confirmed",
    "publish_message",
    "request_recipient_subscription",
    "TextDetectionError",
    "create_textract_client",
    "extract_line_texts",
    "fetch_text_detection",
    "map_job_status",
    "start_text_detection",
]
