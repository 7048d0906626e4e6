from __future__ import annotations

import logging
from pathlib import Path

import httpx

from file_extraction.schemas.results import StageResult
from file_extraction.schemas.uploads import FileType

logger = logging.getLogger(__name__)

ALLOWED_FILE_TYPES = frozenset(item.value for item in FileType)
UNSUPPORTED_TYPE_MESSAGE = "Unsupported file type! Allowed types are JPEG, PNG, PDF"
UNVERIFIED_EMAIL_MESSAGE = "The email provided is not verified. Please verify the email and resubmit."
UPLOAD_FAILED_MESSAGE = "Something went wrong while uploading the file! Please try again."
REQUEST_FAILED_MESSAGE = "Something went wrong! Please try again later."


class UploadIntake:
    """Client side of the upload: address request followed by a direct PUT.

    `loading` is true only while a submission is in flight.
    """

    def __init__(self, *, api_url: str, http_client: httpx.Client | None = None, timeout: float = 60.0) -> None:
        self.api_url = api_url
        self._http_client = http_client
        self._timeout = timeout
        self.loading = False

    def submit(self, *, file_name: str, content: bytes, content_type: str, email: str) -> StageResult:
        self.loading = True
        try:
            if content_type not in ALLOWED_FILE_TYPES:
                logger.info("Rejected unsupported file type file=%s type=%s", file_name, content_type)
                return StageResult.rejected(UNSUPPORTED_TYPE_MESSAGE, fileType=content_type)
            return self._upload(file_name=file_name, content=content, content_type=content_type, email=email)
        finally:
            self.loading = False

    def submit_path(self, path: str | Path, *, content_type: str, email: str) -> StageResult:
        file_path = Path(path)
        return self.submit(
            file_name=file_path.name,
            content=file_path.read_bytes(),
            content_type=content_type,
            email=email,
        )

    def _upload(self, *, file_name: str, content: bytes, content_type: str, email: str) -> StageResult:
        client = self._http_client or httpx.Client(timeout=self._timeout)
        try:
            try:
                response = client.post(
                    self.api_url,
                    json={"fileName": file_name, "email": email, "fileType": content_type},
                )
                response.raise_for_status()
                presigned_url = response.json().get("preSignedURL")
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("Upload URL request failed file=%s: %s", file_name, exc)
                return StageResult.fatal(REQUEST_FAILED_MESSAGE)

            if not presigned_url:
                logger.info("Pre-signed URL is null, recipient unverified email=%s", email)
                return StageResult.rejected(UNVERIFIED_EMAIL_MESSAGE)

            try:
                upload_response = client.put(
                    presigned_url,
                    content=content,
                    headers={
                        "Content-Type": content_type,
                        "x-amz-tagging": f"email={email}",
                    },
                )
                upload_response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.error("File upload failed file=%s: %s", file_name, exc)
                return StageResult.fatal(UPLOAD_FAILED_MESSAGE)
        finally:
            if self._http_client is None:
                client.close()

        logger.info("Uploaded file=%s", file_name)
        return StageResult.success(
            f"Your document is being processed. The generated file links will be emailed to {email}",
        )
