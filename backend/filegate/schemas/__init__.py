"""
Pydantic schemas for request/response validation.
"""
from filegate.schemas.files import ErrorResponse, FileEntry, UploadResponse

__all__ = ["ErrorResponse", "FileEntry", "UploadResponse"]
