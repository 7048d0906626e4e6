from urllib.parse import unquote_plus

from pydantic import BaseModel, Field


class StorageEvent(BaseModel):
    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)

    @classmethod
    def from_notification(cls, event: dict) -> "StorageEvent":
        """Read the first record of an S3 event notification.

        Keys arrive URL-encoded (spaces as `+`), so they are decoded here.
        """
        records = event.get("Records") if isinstance(event, dict) else None
        if not isinstance(records, list) or not records:
            raise ValueError("storage event has no Records")
        s3_record = records[0].get("s3") if isinstance(records[0], dict) else None
        if not isinstance(s3_record, dict):
            raise ValueError("storage event record has no s3 section")
        bucket = (s3_record.get("bucket") or {}).get("name")
        key = (s3_record.get("object") or {}).get("key")
        if not bucket or not key:
            raise ValueError("storage event record is missing bucket name or object key")
        return cls(bucket=bucket, key=unquote_plus(key))
