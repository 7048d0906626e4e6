from __future__ import annotations

import json

from botocore.client import BaseClient

from file_extraction.services.s3_storage import create_aws_client

_PENDING_SUBSCRIPTION = "PendingConfirmation"


def create_sns_client() -> BaseClient:
    return create_aws_client("sns")


def publish_message(
    *,
    client: BaseClient,
    topic_arn: str,
    message: str,
    subject: str | None = None,
    recipient: str | None = None,
) -> str | None:
    """Publish a plain-text notification and return its message id.

    `recipient` becomes an `email` message attribute so per-recipient
    subscription filter policies can route it.
    """
    params: dict = {"TopicArn": topic_arn, "Message": message}
    if subject:
        params["Subject"] = subject
    if recipient:
        params["MessageAttributes"] = {
            "email": {"DataType": "String", "StringValue": recipient},
        }
    response = client.publish(**params)
    return response.get("MessageId")


def is_recipient_confirmed(*, client: BaseClient, topic_arn: str, email: str) -> bool:
    wanted = email.strip().lower()
    params: dict = {"TopicArn": topic_arn}
    while True:
        response = client.list_subscriptions_by_topic(**params)
        for subscription in response.get("Subscriptions") or []:
            if subscription.get("Protocol") != "email":
                continue
            endpoint = str(subscription.get("Endpoint") or "").strip().lower()
            arn = subscription.get("SubscriptionArn") or ""
            if endpoint == wanted and arn and arn != _PENDING_SUBSCRIPTION:
                return True
        token = response.get("NextToken")
        if not token:
            return False
        params["NextToken"] = token


def request_recipient_subscription(*, client: BaseClient, topic_arn: str, email: str) -> None:
    """Subscribe `email` to the topic; the service mails a confirmation link."""
    client.subscribe(
        TopicArn=topic_arn,
        Protocol="email",
        Endpoint=email,
        Attributes={"FilterPolicy": json.dumps({"email": [email]})},
    )
