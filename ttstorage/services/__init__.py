"""Service layer for business logic."""

from ttstorage.services.file_service import FileService
from ttstorage.services.tag_service import TagService

__all__ = [
    "FileService",
    "TagService",
]
