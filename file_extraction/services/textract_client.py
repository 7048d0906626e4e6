from __future__ import annotations

from botocore.client import BaseClient

from file_extraction.schemas.jobs import JobStatus, TextDetectionJob
from file_extraction.services.s3_storage import create_aws_client

_MAX_RESULT_PAGES = 200


class TextDetectionError(RuntimeError):
    """Raised when a text-detection job cannot be started or ends unsuccessfully."""

    def __init__(self, message: str, *, job_id: str | None = None, status: JobStatus | None = None) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.status = status


def create_textract_client() -> BaseClient:
    return create_aws_client("textract")


def start_text_detection(*, client: BaseClient, bucket: str, key: str) -> str:
    response = client.start_document_text_detection(
        DocumentLocation={"S3Object": {"Bucket": bucket, "Name": key}},
    )
    job_id = response.get("JobId")
    if not job_id:
        raise TextDetectionError(f"text detection did not return a job id for s3://{bucket}/{key}")
    return str(job_id)


def map_job_status(raw_status: object) -> JobStatus:
    candidate = str(raw_status or "").strip().upper()
    try:
        return JobStatus(candidate)
    except ValueError:
        return JobStatus.UNKNOWN


def extract_line_texts(blocks: object) -> list[str]:
    """Texts of LINE blocks, in the order the service returned them."""
    if not isinstance(blocks, list):
        return []
    lines: list[str] = []
    for block in blocks:
        if not isinstance(block, dict) or block.get("BlockType") != "LINE":
            continue
        text = block.get("Text")
        if isinstance(text, str):
            lines.append(text)
    return lines


def fetch_text_detection(*, client: BaseClient, job_id: str) -> TextDetectionJob:
    """Fetch job status; on success follow NextToken until every block is read."""
    response = client.get_document_text_detection(JobId=job_id)
    status = map_job_status(response.get("JobStatus"))
    status_message = response.get("StatusMessage")
    if status is not JobStatus.SUCCEEDED:
        return TextDetectionJob(job_id=job_id, status=status, status_message=status_message)

    lines = extract_line_texts(response.get("Blocks"))
    next_token = response.get("NextToken")
    pages_read = 1
    while next_token:
        if pages_read >= _MAX_RESULT_PAGES:
            raise TextDetectionError(
                f"text detection results exceeded {_MAX_RESULT_PAGES} pages",
                job_id=job_id,
                status=status,
            )
        response = client.get_document_text_detection(JobId=job_id, NextToken=next_token)
        lines.extend(extract_line_texts(response.get("Blocks")))
        next_token = response.get("NextToken")
        pages_read += 1

    return TextDetectionJob(job_id=job_id, status=status, lines=lines, status_message=status_message)
