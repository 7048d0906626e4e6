import json
from enum import Enum

from pydantic import BaseModel, Field

CORS_HEADERS = {
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "OPTIONS,POST",
}


class StageOutcome(str, Enum):
    SUCCESS = "success"
    USER_REJECTED = "user_rejected"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


_STATUS_CODES = {
    StageOutcome.SUCCESS: 200,
    StageOutcome.USER_REJECTED: 200,
    StageOutcome.RETRYABLE_FAILURE: 503,
    StageOutcome.FATAL_FAILURE: 500,
}


class StageResult(BaseModel):
    """Outcome of one stage invocation.

    `skipped` marks a success that intentionally did nothing (foreign key,
    duplicate trigger).
    """

    outcome: StageOutcome
    message: str
    skipped: bool = False
    data: dict = Field(default_factory=dict)

    @classmethod
    def success(cls, message: str, *, skipped: bool = False, **data) -> "StageResult":
        return cls(outcome=StageOutcome.SUCCESS, message=message, skipped=skipped, data=data)

    @classmethod
    def rejected(cls, message: str, **data) -> "StageResult":
        return cls(outcome=StageOutcome.USER_REJECTED, message=message, data=data)

    @classmethod
    def retryable(cls, message: str, **data) -> "StageResult":
        return cls(outcome=StageOutcome.RETRYABLE_FAILURE, message=message, data=data)

    @classmethod
    def fatal(cls, message: str, **data) -> "StageResult":
        return cls(outcome=StageOutcome.FATAL_FAILURE, message=message, data=data)

    @property
    def ok(self) -> bool:
        return self.outcome in {StageOutcome.SUCCESS, StageOutcome.USER_REJECTED}

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.outcome]

    def body(self) -> dict:
        if self.ok:
            return {**self.data, "message": self.message}
        return {"error": self.message}

    def to_envelope(self, headers: dict[str, str] | None = None) -> dict:
        envelope: dict = {
            "statusCode": self.status_code,
            "body": json.dumps(self.body(), default=str),
        }
        if headers:
            envelope["headers"] = dict(headers)
        return envelope
