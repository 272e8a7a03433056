"""
Pydantic schemas for file endpoints.
"""
from datetime import datetime, timezone
from pydantic import BaseModel, Field


def to_iso_timestamp(value: datetime) -> str:
    """
    Render a timestamp as UTC ISO-8601 with millisecond precision and a Z
    suffix (e.g. 2024-05-01T12:30:00.000Z). Naive datetimes are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class UploadResponse(BaseModel):
    """Schema for upload response."""
    key: str = Field(..., description="Object key (the uploaded filename)")
    url: str = Field(..., description="Retrieval URL for the stored object")
    size: int = Field(..., description="Client-supplied Content-Length, for display only")

    class Config:
        json_schema_extra = {
            "example": {
                "key": "a.txt",
                "url": "https://files.example.com/files/a.txt",
                "size": 5
            }
        }


class FileEntry(BaseModel):
    """Schema for a listing entry."""
    key: str
    size: int
    uploaded: str = Field(..., description="Upload time, ISO-8601 UTC")


class ErrorResponse(BaseModel):
    """Schema for JSON error responses."""
    error: str
