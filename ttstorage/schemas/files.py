"""Pydantic schemas for file operation endpoints."""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import Field

from common.constants import MAX_FILENAME_LENGTH
from ttstorage.schemas.common import CamelModel
from ttstorage.types import FileRecord, Visibility


class FileResponse(CamelModel):
    """Response model for file metadata."""
    id: str
    filename: str
    user_id: str
    tags: List[str]
    size: int
    visibility: Visibility
    content_type: str
    download_link: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: FileRecord, download_link: str) -> "FileResponse":
        return cls(
            id=record.file_id,
            filename=record.filename,
            user_id=record.owner_id,
            tags=sorted(record.tags),
            size=record.size,
            visibility=record.visibility,
            content_type=record.content_type,
            download_link=download_link,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class RenameFileRequest(CamelModel):
    """Request model for renaming a file."""
    new_filename: str = Field(
        ...,
        min_length=1,
        max_length=MAX_FILENAME_LENGTH,
        description="New name without extension; the current extension is kept",
    )
    user_id: UUID
