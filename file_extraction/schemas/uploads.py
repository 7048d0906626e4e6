from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FileType(str, Enum):
    JPEG = "image/jpeg"
    PNG = "image/png"
    PDF = "application/pdf"


class UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName", min_length=1)
    email: str = Field(min_length=1)
    # Informational only; the issuer does not branch on it.
    file_type: str | None = Field(default=None, alias="fileType")


class SignedAddress(BaseModel):
    url: str
    expires_at: datetime
    bound_headers: frozenset[str] = frozenset()
