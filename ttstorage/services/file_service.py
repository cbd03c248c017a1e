"""File service for business logic."""

import dataclasses
import os
import shutil
import tempfile
from datetime import timedelta
from functools import partial
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, Optional, Tuple, Union

from common.constants import API_PREFIX, STAGING_FILE_PREFIX, STAGING_FILE_SUFFIX, STREAM_CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from ttstorage.checksum import compute_file_checksum
from ttstorage.exceptions import (
    DuplicateReason,
    ErrorCodes,
    ErrorKind,
    ServiceError,
    duplicate_file,
    not_found_or_access_denied,
    validation_error,
)
from ttstorage.filename_mapping import build_mapping, rename_mapping, sniff_content_type
from ttstorage.repositories.file_repository import FileRepository
from ttstorage.storage.base import ObjectStorage
from ttstorage.types import FileRecord, Page, PageRequest, Visibility
from ttstorage.utils import generate_uuid, normalize_tags, utc_now

logger = get_logger(__name__)


class FileService:
    def __init__(
        self,
        storage: ObjectStorage,
        staging_dir: Union[str, Path],
        domain: str,
        file_repo: Optional[FileRepository] = None,
        content_sniffer: Callable[[Path], str] = sniff_content_type,
    ):
        self.storage = storage
        self.staging_dir = Path(staging_dir)
        self.domain = domain.rstrip("/")
        self.file_repo = file_repo if file_repo is not None else FileRepository()
        self.content_sniffer = content_sniffer

    def build_download_link(self, record: FileRecord) -> str:
        return f"{self.domain}{API_PREFIX}/files/{record.file_id}/users/{record.owner_id}"

    def upload_file(
        self,
        owner_id: str,
        content_type: Optional[str],
        visibility: Visibility,
        tags: Optional[Iterable[str]],
        filename: Optional[str],
        file_data: BinaryIO,
    ) -> FileRecord:
        """
        Stage, deduplicate, store and record an uploaded file.

        Args:
            owner_id: UUID of the uploading user
            content_type: MIME type sent by the client; sniffed when empty
            visibility: PUBLIC or PRIVATE
            tags: Free-text tags, normalized before persisting
            filename: Original filename of the upload
            file_data: Readable binary stream with the file content

        Returns:
            The persisted FileRecord

        Raises:
            ServiceError: VALIDATION for a missing filename, DUPLICATE_FILE when
                the owner already has this file, STORAGE or METADATA_STORE when
                a backend fails
        """
        if not filename or not filename.strip():
            raise validation_error("request does not contain a file name", ErrorCodes.FILENAME_IS_ABSENT)

        file_id = generate_uuid()
        logger.info(f"Starting streaming upload for file: {filename} [file_id={file_id}] [user_id={owner_id}]")

        staged_path = self._stage(file_data)
        try:
            size = staged_path.stat().st_size
            checksum = compute_file_checksum(filename, staged_path)

            sniffed_type = None
            if not content_type:
                content_type = sniffed_type = self.content_sniffer(staged_path)

            sniffer = (lambda: sniffed_type) if sniffed_type else partial(self.content_sniffer, staged_path)
            mapping = build_mapping(file_id, filename, sniffer)

            # Look up by the stored name, which carries any inferred extension.
            existing = self.file_repo.find_by_owner_and_filename(owner_id, mapping.display_name)
            if existing is not None:
                if existing.filename == mapping.display_name:
                    logger.warning(f"Rejecting upload, filename already exists [file_id={existing.file_id}]")
                    raise duplicate_file(DuplicateReason.FILENAME)
                # Only reachable if the lookup stops keying on the filename.
                if existing.checksum == checksum:
                    logger.warning(f"Rejecting upload, content already exists [file_id={existing.file_id}]")
                    raise duplicate_file(DuplicateReason.CONTENT)

            self.storage.put_file(mapping.storage_key, staged_path, content_type)
            logger.info(f"Uploaded file to storage: {mapping.storage_key} ({size} bytes)")

            now = utc_now()
            record = FileRecord(
                file_id=file_id,
                owner_id=owner_id,
                filename=mapping.display_name,
                checksum=checksum,
                tags=frozenset(normalize_tags(tags)),
                size=size,
                visibility=visibility,
                content_type=content_type,
                storage_key=mapping.storage_key,
                created_at=now,
                updated_at=now,
            )

            try:
                self.file_repo.create_file(record)
            except ServiceError:
                self._discard_object(mapping.storage_key)
                raise

            logger.info(f"Saved file metadata to database [file_id={file_id}]")
            return record
        finally:
            self._remove_staged(staged_path)

    def _stage(self, file_data: BinaryIO) -> Path:
        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix=STAGING_FILE_PREFIX, suffix=STAGING_FILE_SUFFIX, dir=self.staging_dir)
        except OSError as e:
            logger.error(f"Cannot create staging file in {self.staging_dir}: {e}")
            raise ServiceError(ErrorKind.STORAGE, ErrorCodes.FILE_UPLOAD, "Error occurred when upload the file") from e

        staged_path = Path(name)
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(file_data, out, STREAM_CHUNK_SIZE_BYTES)
        except OSError as e:
            self._remove_staged(staged_path)
            logger.error(f"Failed to stage upload to {staged_path}: {e}")
            raise ServiceError(ErrorKind.STORAGE, ErrorCodes.FILE_UPLOAD, "Error occurred when upload the file") from e
        return staged_path

    def _remove_staged(self, staged_path: Path) -> None:
        try:
            staged_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete temporary file: {staged_path}: {e}")

    def _discard_object(self, storage_key: str) -> None:
        try:
            self.storage.delete(storage_key)
            logger.info(f"Removed object {storage_key} after failed metadata write")
        except ServiceError as e:
            logger.error(f"Failed to remove orphaned object {storage_key}: {e.message}")

    def _get_owned(self, user_id: str, file_id: str) -> FileRecord:
        record = self.file_repo.find_by_id_and_owner(file_id, user_id)
        if record is None:
            raise not_found_or_access_denied()
        return record

    def get_file(self, user_id: str, file_id: str) -> Tuple[FileRecord, Iterator[bytes]]:
        record = self._get_owned(user_id, file_id)
        stream = self.storage.get_stream(record.storage_key)
        logger.info(f"Streaming file {record.storage_key} ({record.size} bytes) [user_id={user_id}]")
        return record, stream

    def rename_file(self, user_id: str, file_id: str, new_name: str) -> FileRecord:
        record = self._get_owned(user_id, file_id)
        mapping = rename_mapping(record.file_id, record.filename, new_name)

        updated_at = max(utc_now(), record.updated_at + timedelta(microseconds=1))
        if not self.file_repo.update_filename(file_id, user_id, mapping.display_name, updated_at):
            raise not_found_or_access_denied()

        logger.info(f"Renamed file {file_id} from {record.filename!r} to {mapping.display_name!r}")
        return dataclasses.replace(record, filename=mapping.display_name, updated_at=updated_at)

    def delete_file(self, user_id: str, file_id: str) -> None:
        """
        Delete the stored object, then its metadata.

        A failed object deletion leaves the metadata untouched. A failed
        metadata deletion after the object is gone is reported and left as is.
        """
        record = self._get_owned(user_id, file_id)

        try:
            self.storage.delete(record.storage_key)
        except ServiceError as e:
            logger.error(f"Failed to delete file '{record.filename}' from storage: {e.message}")
            raise ServiceError(
                ErrorKind.STORAGE,
                ErrorCodes.DELETE_FROM_STORAGE,
                "error occurred when deleting file from storage",
            ) from e

        if not self.file_repo.delete_file(file_id, user_id):
            logger.warning(f"File metadata already gone after storage delete [file_id={file_id}]")
        else:
            logger.info(f"Deleted file {file_id} [user_id={user_id}]")

    def list_public_files(self, tags: Optional[Iterable[str]], page_request: PageRequest) -> Page[FileRecord]:
        return self.file_repo.list_files(
            page_request,
            visibility=Visibility.PUBLIC,
            tags=normalize_tags(tags) or None,
        )

    def list_user_files(
        self, user_id: str, tags: Optional[Iterable[str]], page_request: PageRequest
    ) -> Page[FileRecord]:
        return self.file_repo.list_files(
            page_request,
            owner_id=user_id,
            tags=normalize_tags(tags) or None,
        )
