"""Repository layer for metadata access."""

from ttstorage.repositories.file_repository import FileRepository
from ttstorage.repositories.tag_repository import TagRepository

__all__ = [
    "FileRepository",
    "TagRepository",
]
