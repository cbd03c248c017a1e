"""Shared service instances and request dependencies for the API routes."""

from typing import List, Optional

from fastapi import Query

from common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ttstorage import config
from ttstorage.exceptions import validation_error
from ttstorage.services.file_service import FileService
from ttstorage.services.tag_service import TagService
from ttstorage.storage.base import ObjectStorage
from ttstorage.storage.s3_storage import S3ObjectStorage
from ttstorage.types import PageRequest, SortDirection

_object_storage: Optional[ObjectStorage] = None


def set_object_storage(storage: Optional[ObjectStorage]) -> None:
    """Set global object storage instance"""
    global _object_storage
    _object_storage = storage


def get_object_storage() -> ObjectStorage:
    """Get global object storage instance, connecting on first use"""
    global _object_storage
    if _object_storage is None:
        _object_storage = S3ObjectStorage(config.S3_BUCKET_NAME)
    return _object_storage


def get_file_service() -> FileService:
    return FileService(
        storage=get_object_storage(),
        staging_dir=config.STAGING_DIR,
        domain=config.DOMAIN,
    )


def get_tag_service() -> TagService:
    return TagService()


def parse_sort(values: List[str]) -> tuple:
    """
    Parse ``sort`` query values of the form ``field`` or ``field,asc|desc``.

    Several fields may share one direction (``size,filename,desc``).
    """
    orders = []
    for value in values:
        parts = [part.strip() for part in value.split(",") if part.strip()]
        if not parts:
            continue

        direction = SortDirection.ASC
        if parts[-1].lower() in (SortDirection.ASC.value, SortDirection.DESC.value):
            direction = SortDirection(parts.pop().lower())
            if not parts:
                raise validation_error(f"sort direction without a field: '{value}'")

        orders.extend((field_name, direction) for field_name in parts)
    return tuple(orders)


def page_request(
    page: int = Query(0, ge=0, description="Zero-based page index"),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    sort: List[str] = Query([], description="Sorting criteria: property(,asc|desc)"),
) -> PageRequest:
    return PageRequest(page=page, size=size, sort=parse_sort(sort))
