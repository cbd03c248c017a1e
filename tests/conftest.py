"""Shared pytest fixtures for all tests."""

import uuid
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

import pytest

from ttstorage.database import init_database
from ttstorage.exceptions import ErrorCodes, ErrorKind, ServiceError
from ttstorage.services.file_service import FileService
from ttstorage.storage.base import ObjectStorage

TEST_DOMAIN = "http://testserver"


class InMemoryObjectStorage(ObjectStorage):
    """
    Object store double keeping content in a dict.

    Operations named in ``failing`` raise a STORAGE ServiceError.
    """

    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, Optional[str]]] = {}
        self.failing: Set[str] = set()
        self.bucket_ready = False

    def _maybe_fail(self, operation: str, code: str = ErrorCodes.STORAGE_CONNECTION) -> None:
        if operation in self.failing:
            raise ServiceError(ErrorKind.STORAGE, code, f"simulated {operation} failure")

    def ensure_bucket(self) -> None:
        self._maybe_fail("ensure_bucket")
        self.bucket_ready = True

    def put_file(self, key: str, path: Union[str, Path], content_type: Optional[str] = None) -> None:
        self._maybe_fail("put_file", ErrorCodes.FILE_UPLOAD)
        self.objects[key] = (Path(path).read_bytes(), content_type)

    def get_stream(self, key: str) -> Iterator[bytes]:
        self._maybe_fail("get_stream")
        if key not in self.objects:
            raise ServiceError(ErrorKind.STORAGE, ErrorCodes.STORAGE_CONNECTION, f"no such key {key}")
        data = self.objects[key][0]
        return iter([data[i:i + 4] for i in range(0, len(data), 4)] or [b""])

    def delete(self, key: str) -> None:
        self._maybe_fail("delete", ErrorCodes.DELETE_FROM_STORAGE)
        self.objects.pop(key, None)

    def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))

    def ping(self) -> None:
        self._maybe_fail("ping")


def fake_sniffer(path: Union[str, Path]) -> str:
    """
    Content sniffer recognising a few signatures, standing in for libmagic.
    """
    head = Path(path).read_bytes()[:8]
    if head.startswith(b"\x89PNG"):
        return "image/png"
    if head.startswith(b"%PDF"):
        return "application/pdf"
    if head.startswith(b"\x00\x01"):
        return "application/x-custom-binary"
    return "text/plain"


@pytest.fixture
def test_db(tmp_path, monkeypatch) -> Path:
    """
    Create a temporary metadata database for each test.
    """
    db_path = tmp_path / "test.db"
    monkeypatch.setattr("ttstorage.database.DATABASE_PATH", str(db_path))
    monkeypatch.setattr("ttstorage.config.DATABASE_PATH", str(db_path))
    init_database()
    return db_path


@pytest.fixture
def object_storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage()


@pytest.fixture
def staging_dir(tmp_path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def file_service(test_db, object_storage, staging_dir) -> FileService:
    """
    FileService wired to the temporary database and the in-memory store.
    """
    return FileService(
        storage=object_storage,
        staging_dir=staging_dir,
        domain=TEST_DOMAIN,
        content_sniffer=fake_sniffer,
    )


@pytest.fixture
def user1() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def user2() -> str:
    return str(uuid.uuid4())
