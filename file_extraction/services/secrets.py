from __future__ import annotations

import json

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from file_extraction.services.s3_storage import create_aws_client

BITLY_TOKEN_FIELD = "BITLY_ACCESS_TOKEN"


class SecretRetrievalError(RuntimeError):
    """Raised when the link-shortener credential cannot be read."""


def create_secrets_client() -> BaseClient:
    return create_aws_client("secretsmanager")


def get_bitly_access_token(*, client: BaseClient, secret_id: str) -> str:
    try:
        response = client.get_secret_value(SecretId=secret_id)
    except (BotoCoreError, ClientError) as exc:
        raise SecretRetrievalError(f"Failed to retrieve secret {secret_id}: {exc}") from exc

    secret_string = response.get("SecretString")
    if not isinstance(secret_string, str) or not secret_string.strip():
        raise SecretRetrievalError(f"Secret {secret_id} is empty or not a string")
    try:
        payload = json.loads(secret_string)
    except json.JSONDecodeError as exc:
        raise SecretRetrievalError(f"Secret {secret_id} is not valid JSON") from exc

    token = payload.get(BITLY_TOKEN_FIELD) if isinstance(payload, dict) else None
    if not isinstance(token, str) or not token.strip():
        raise SecretRetrievalError(f"Secret {secret_id} has no {BITLY_TOKEN_FIELD}")
    return token.strip()
