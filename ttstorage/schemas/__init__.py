"""Pydantic schemas for API requests and responses."""

from ttstorage.schemas.common import ErrorResponse, PageResponse, SuccessResponse
from ttstorage.schemas.files import FileResponse, RenameFileRequest

__all__ = [
    "ErrorResponse",
    "FileResponse",
    "PageResponse",
    "RenameFileRequest",
    "SuccessResponse",
]
