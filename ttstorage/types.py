"""Storage service data type definitions."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Generic, List, Tuple, TypeVar

from common.constants import DEFAULT_PAGE_SIZE

T = TypeVar("T")


class Visibility(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class FileRecord:
    """
    Metadata for one stored file.
    """
    file_id: str
    owner_id: str
    filename: str
    checksum: str
    tags: FrozenSet[str]
    size: int
    visibility: Visibility
    content_type: str
    storage_key: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TagRecord:
    tag_name: str
    created_at: datetime


@dataclass(frozen=True)
class FilenameMapping:
    """
    How a file is named for users and keyed in the object store.
    """
    display_name: str
    storage_key: str
    storage_key_base: str
    extension: str


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort: Tuple[Tuple[str, SortDirection], ...] = ()

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(frozen=True)
class Page(Generic[T]):
    content: List[T]
    total_elements: int
    page: int
    size: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "total_pages", math.ceil(self.total_elements / self.size) if self.size else 0)
