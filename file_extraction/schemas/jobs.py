from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.IN_PROGRESS


class TextDetectionJob(BaseModel):
    job_id: str
    status: JobStatus
    lines: list[str] = Field(default_factory=list)
    status_message: str | None = None


class JobCheckpoint(BaseModel):
    job_id: str
    bucket: str
    raw_key: str
    attempt: int = 0
    started_at: datetime


class ArtifactPair(BaseModel):
    bucket: str
    text_key: str
    csv_key: str


class DownloadLink(BaseModel):
    long_url: str
    short_url: str
    expires_at: datetime

    @property
    def shortened(self) -> bool:
        return self.short_url != self.long_url
