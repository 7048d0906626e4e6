import hashlib
import io
from datetime import UTC, datetime
from urllib.parse import parse_qsl

import pytest
from botocore.exceptions import ClientError


def _client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakeS3:
    """In-memory stand-in for the handful of S3 calls the pipeline makes."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict] = {}
        self.presigned: list[dict] = []
        self.put_calls: list[dict] = []
        self.fail_puts_for: set[str] = set()

    def generate_presigned_url(self, client_method, Params, ExpiresIn, HttpMethod):
        self.presigned.append(
            {"method": client_method, "params": dict(Params), "expires_in": ExpiresIn, "http_method": HttpMethod}
        )
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Expires={ExpiresIn}&sig=abc"

    def put_object(self, **params):
        bucket, key = params["Bucket"], params["Key"]
        self.put_calls.append(params)
        if key in self.fail_puts_for:
            raise _client_error("InternalError", "PutObject")
        if params.get("IfNoneMatch") == "*" and (bucket, key) in self.objects:
            raise _client_error("PreconditionFailed", "PutObject")
        body = params["Body"]
        tags = dict(parse_qsl(params["Tagging"])) if params.get("Tagging") else {}
        self.objects[(bucket, key)] = {
            "body": body,
            "content_type": params.get("ContentType"),
            "metadata": dict(params.get("Metadata") or {}),
            "tags": tags,
            "etag": hashlib.md5(body).hexdigest(),
        }
        return {"ETag": f'"{self.objects[(bucket, key)]["etag"]}"'}

    def seed(self, bucket: str, key: str, body: bytes = b"raw", tags: dict | None = None, metadata: dict | None = None):
        self.objects[(bucket, key)] = {
            "body": body,
            "content_type": "application/octet-stream",
            "metadata": dict(metadata or {}),
            "tags": dict(tags or {}),
            "etag": hashlib.md5(body).hexdigest(),
        }

    def _get(self, bucket: str, key: str, operation: str) -> dict:
        item = self.objects.get((bucket, key))
        if item is None:
            raise _client_error("404" if operation == "HeadObject" else "NoSuchKey", operation)
        return item

    def get_object(self, Bucket, Key):
        item = self._get(Bucket, Key, "GetObject")
        return {"Body": io.BytesIO(item["body"]), "ContentType": item["content_type"]}

    def head_object(self, Bucket, Key):
        item = self._get(Bucket, Key, "HeadObject")
        return {"ETag": f'"{item["etag"]}"', "Metadata": dict(item["metadata"]), "ContentLength": len(item["body"])}

    def get_object_tagging(self, Bucket, Key):
        item = self._get(Bucket, Key, "GetObjectTagging")
        return {"TagSet": [{"Key": k, "Value": v} for k, v in item["tags"].items()]}

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)
        return {}

    def list_objects_v2(self, Bucket, Prefix="", ContinuationToken=None):
        keys = sorted(key for bucket, key in self.objects if bucket == Bucket and key.startswith(Prefix))
        return {"Contents": [{"Key": key} for key in keys], "IsTruncated": False}

    def body(self, bucket: str, key: str) -> bytes:
        return self.objects[(bucket, key)]["body"]

    def keys(self, bucket: str) -> list[str]:
        return sorted(key for b, key in self.objects if b == bucket)


class FakeSNS:
    def __init__(self) -> None:
        self.published: list[dict] = []
        self.subscriptions: list[dict] = []
        self.subscribe_calls: list[dict] = []
        self.fail_publish = False

    def publish(self, **params):
        if self.fail_publish:
            raise _client_error("InternalError", "Publish")
        self.published.append(params)
        return {"MessageId": f"msg-{len(self.published)}"}

    def list_subscriptions_by_topic(self, TopicArn, NextToken=None):
        return {"Subscriptions": list(self.subscriptions)}

    def subscribe(self, **params):
        self.subscribe_calls.append(params)
        return {"SubscriptionArn": "pending confirmation"}


class FakeSecrets:
    def __init__(self, secret_string: str | None = '{"BITLY_ACCESS_TOKEN": "bitly-token"}') -> None:
        self.secret_string = secret_string
        self.requested: list[str] = []

    def get_secret_value(self, SecretId):
        self.requested.append(SecretId)
        if self.secret_string is None:
            raise _client_error("ResourceNotFoundException", "GetSecretValue")
        return {"SecretString": self.secret_string}


class FakeTextract:
    """Replays a scripted sequence of GetDocumentTextDetection responses."""

    def __init__(self, responses: list[dict], job_id: str = "job-1") -> None:
        self.responses = list(responses)
        self.job_id = job_id
        self.started: list[dict] = []
        self.status_calls: list[dict] = []

    def start_document_text_detection(self, DocumentLocation):
        self.started.append(DocumentLocation)
        return {"JobId": self.job_id}

    def get_document_text_detection(self, JobId, NextToken=None):
        self.status_calls.append({"JobId": JobId, "NextToken": NextToken})
        if NextToken is not None:
            return self.responses.pop(0)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def line_blocks(*texts: str) -> list[dict]:
    blocks: list[dict] = [{"BlockType": "PAGE", "Id": "page-1"}]
    for index, text in enumerate(texts):
        blocks.append({"BlockType": "LINE", "Id": f"line-{index}", "Text": text})
        blocks.append({"BlockType": "WORD", "Id": f"word-{index}", "Text": text.split(" ")[0] if text else ""})
    return blocks


FIXED_NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=UTC)


@pytest.fixture()
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture()
def fake_sns() -> FakeSNS:
    return FakeSNS()


@pytest.fixture()
def fake_secrets() -> FakeSecrets:
    return FakeSecrets()


@pytest.fixture()
def fixed_clock():
    return lambda: FIXED_NOW
