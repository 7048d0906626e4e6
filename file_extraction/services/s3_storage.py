from __future__ import annotations

import boto3
from botocore.client import BaseClient
from botocore.exceptions import ClientError

from file_extraction.config import get_aws_endpoint_url, get_aws_region

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}
_PRECONDITION_CODES = {"412", "PreconditionFailed", "409", "ConditionalRequestConflict"}


def create_aws_client(service_name: str) -> BaseClient:
    """Build a boto3 client using the default credential chain.

    `AWS_ENDPOINT_URL` redirects every service to a local stack when set.
    """
    return boto3.client(
        service_name,
        region_name=get_aws_region(),
        endpoint_url=get_aws_endpoint_url(),
    )


def create_s3_client() -> BaseClient:
    return create_aws_client("s3")


def build_storage_key(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def is_missing_object_error(exc: ClientError) -> bool:
    return error_code(exc) in _MISSING_OBJECT_CODES


def is_precondition_failed(exc: ClientError) -> bool:
    return error_code(exc) in _PRECONDITION_CODES


def generate_presigned_put_url(
    *,
    client: BaseClient,
    bucket: str,
    key: str,
    tagging: str | None = None,
    content_type: str | None = None,
    expires_in: int = 3600,
) -> str:
    params: dict = {"Bucket": bucket, "Key": key}
    if tagging:
        # Signed as x-amz-tagging; an upload without the identical header is rejected.
        params["Tagging"] = tagging
    if content_type:
        params["ContentType"] = content_type
    return client.generate_presigned_url(
        "put_object",
        Params=params,
        ExpiresIn=expires_in,
        HttpMethod="PUT",
    )


def generate_presigned_get_url(
    *,
    client: BaseClient,
    bucket: str,
    key: str,
    expires_in: int = 3600,
    content_disposition: str | None = None,
) -> str:
    params: dict = {"Bucket": bucket, "Key": key}
    if content_disposition:
        params["ResponseContentDisposition"] = content_disposition
    return client.generate_presigned_url(
        "get_object",
        Params=params,
        ExpiresIn=expires_in,
        HttpMethod="GET",
    )


def put_object_bytes(
    *,
    client: BaseClient,
    bucket: str,
    key: str,
    body: bytes,
    content_type: str,
    tagging: str | None = None,
    metadata: dict[str, str] | None = None,
    if_none_match: str | None = None,
) -> None:
    params: dict = {
        "Bucket": bucket,
        "Key": key,
        "Body": body,
        "ContentType": content_type,
    }
    if tagging:
        params["Tagging"] = tagging
    if metadata:
        params["Metadata"] = metadata
    if if_none_match:
        params["IfNoneMatch"] = if_none_match
    client.put_object(**params)


def get_object_bytes(*, client: BaseClient, bucket: str, key: str) -> bytes:
    response = client.get_object(Bucket=bucket, Key=key)
    return response["Body"].read()


def head_object_or_none(*, client: BaseClient, bucket: str, key: str) -> dict | None:
    try:
        return client.head_object(Bucket=bucket, Key=key)
    except ClientError as exc:
        if is_missing_object_error(exc):
            return None
        raise


def get_object_tags(*, client: BaseClient, bucket: str, key: str) -> dict[str, str]:
    response = client.get_object_tagging(Bucket=bucket, Key=key)
    tags: dict[str, str] = {}
    for item in response.get("TagSet") or []:
        tag_key = item.get("Key")
        if tag_key:
            tags[tag_key] = item.get("Value", "")
    return tags


def delete_object(*, client: BaseClient, bucket: str, key: str) -> None:
    client.delete_object(Bucket=bucket, Key=key)


def list_object_keys(*, client: BaseClient, bucket: str, prefix: str) -> list[str]:
    keys: list[str] = []
    params: dict = {"Bucket": bucket, "Prefix": prefix}
    while True:
        response = client.list_objects_v2(**params)
        for item in response.get("Contents") or []:
            if item.get("Key"):
                keys.append(item["Key"])
        token = response.get("NextContinuationToken")
        if not response.get("IsTruncated") or not token:
            return keys
        params["ContinuationToken"] = token
