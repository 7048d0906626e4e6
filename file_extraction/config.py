import os
from pathlib import Path

from dotenv import load_dotenv


_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(_ENV_PATH, override=False)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _get_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _get_int(name: str, default: int) -> int:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    value = _get_env(name)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


def get_input_bucket_name() -> str | None:
    return _get_env("INPUT_BUCKET_NAME")


def get_processed_bucket_name() -> str | None:
    """Bucket holding derived artifacts.

    Unset means "same bucket as the triggering event".
    """
    return _get_env("PROCESSED_BUCKET_NAME")


def get_sns_topic_arn() -> str | None:
    return _get_env("SNS_TOPIC_ARN")


def get_aws_region() -> str:
    return _get_env("AWS_REGION") or "us-east-1"


def get_aws_endpoint_url() -> str | None:
    return _get_env("AWS_ENDPOINT_URL")


def get_gateway_base_url() -> str | None:
    return _get_env("API_GATEWAY_URL")


def get_bitly_secret_id() -> str:
    return _get_env("BITLY_SECRET_ID") or "bitly_access_token"


def get_bitly_base_url() -> str:
    return _get_env("BITLY_BASE_URL") or "https://api-ssl.bitly.com/v4"


def get_presigned_url_expires_sec() -> int:
    return _get_int("PRESIGNED_URL_EXPIRES_SEC", 3600)


def get_textract_poll_interval_sec() -> float:
    return _get_float("TEXTRACT_POLL_INTERVAL_SEC", 5.0)


def get_textract_max_polls() -> int:
    return _get_int("TEXTRACT_MAX_POLLS", 120)


def get_extraction_mode() -> str:
    mode = (_get_env("EXTRACTION_MODE") or "inline").lower()
    return mode if mode in {"inline", "deferred"} else "inline"


def get_require_confirmed_recipient() -> bool:
    return _get_bool("REQUIRE_CONFIRMED_RECIPIENT", False)


def get_notify_on_failure() -> bool:
    return _get_bool("NOTIFY_ON_FAILURE", True)


def get_cors_allow_origins() -> list[str]:
    raw = _get_env("CORS_ALLOW_ORIGINS") or "*"
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_log_level() -> str:
    return (_get_env("LOG_LEVEL") or "INFO").upper()
