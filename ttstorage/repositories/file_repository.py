"""File repository for database operations."""

from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Set

from common.logging_config import get_logger
from ttstorage.database import get_db_connection
from ttstorage.exceptions import ErrorCodes, ErrorKind, ServiceError
from ttstorage.repositories.base import build_order_by, translate_db_errors
from ttstorage.types import FileRecord, Page, PageRequest, Visibility

logger = get_logger(__name__)

FILE_COLUMNS = "file_id, owner_id, filename, checksum, size, visibility, content_type, storage_key, created_at, updated_at"

# Columns of idx_files_owner_checksum_filename as sqlite reports them.
DUPLICATE_FILE_CONSTRAINT = "files.owner_id, files.checksum, files.filename"

SORTABLE_COLUMNS = MappingProxyType({
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "filename": "filename",
    "size": "size",
    "contentType": "content_type",
    "visibility": "visibility",
})


def _row_to_record(row, tags: Iterable[str]) -> FileRecord:
    try:
        visibility = Visibility(row["visibility"])
        created_at = datetime.fromisoformat(row["created_at"])
        updated_at = datetime.fromisoformat(row["updated_at"])
    except ValueError as e:
        logger.error(f"Stored file metadata is malformed [file_id={row['file_id']}]: {e}")
        raise ServiceError(ErrorKind.PARSE, ErrorCodes.PARSE_VALIDATION, "Stored file metadata is malformed") from e

    return FileRecord(
        file_id=row["file_id"],
        owner_id=row["owner_id"],
        filename=row["filename"],
        checksum=row["checksum"],
        tags=frozenset(tags),
        size=row["size"],
        visibility=visibility,
        content_type=row["content_type"],
        storage_key=row["storage_key"],
        created_at=created_at,
        updated_at=updated_at,
    )


def _load_tags(conn, file_ids: List[str]) -> Dict[str, Set[str]]:
    tags: Dict[str, Set[str]] = {file_id: set() for file_id in file_ids}
    if not file_ids:
        return tags

    placeholders = ','.join('?' for _ in file_ids)
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT file_id, tag FROM file_tags WHERE file_id IN ({placeholders})",
        file_ids
    )
    for row in cursor.fetchall():
        tags[row["file_id"]].add(row["tag"])
    return tags


class FileRepository:
    @staticmethod
    def create_file(record: FileRecord) -> FileRecord:
        logger.debug(f"Persisting file metadata [file_id={record.file_id}]")
        with translate_db_errors(
            ErrorCodes.FILE_UPLOAD, "Error occurred when saving file metadata", DUPLICATE_FILE_CONSTRAINT
        ):
            with get_db_connection() as conn:
                try:
                    cursor = conn.cursor()
                    cursor.execute(
                        f"INSERT INTO files ({FILE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            record.file_id,
                            record.owner_id,
                            record.filename,
                            record.checksum,
                            record.size,
                            record.visibility.value,
                            record.content_type,
                            record.storage_key,
                            record.created_at.isoformat(),
                            record.updated_at.isoformat(),
                        )
                    )
                    cursor.executemany(
                        "INSERT INTO file_tags (file_id, tag) VALUES (?, ?)",
                        [(record.file_id, tag) for tag in sorted(record.tags)]
                    )
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        return record

    @staticmethod
    def find_by_owner_and_filename(owner_id: str, filename: str) -> Optional[FileRecord]:
        with translate_db_errors(ErrorCodes.INTERNAL_SERVER, "Error occurred when reading file metadata"):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT {FILE_COLUMNS} FROM files WHERE owner_id = ? AND filename = ? ORDER BY created_at LIMIT 1",
                    (owner_id, filename)
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return _row_to_record(row, _load_tags(conn, [row["file_id"]])[row["file_id"]])

    @staticmethod
    def find_by_id_and_owner(file_id: str, owner_id: str) -> Optional[FileRecord]:
        with translate_db_errors(ErrorCodes.INTERNAL_SERVER, "Error occurred when reading file metadata"):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT {FILE_COLUMNS} FROM files WHERE file_id = ? AND owner_id = ?",
                    (file_id, owner_id)
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return _row_to_record(row, _load_tags(conn, [file_id])[file_id])

    @staticmethod
    def update_filename(file_id: str, owner_id: str, filename: str, updated_at: datetime) -> bool:
        with translate_db_errors(ErrorCodes.INTERNAL_SERVER, "Error occurred when renaming file"):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "UPDATE files SET filename = ?, updated_at = ? WHERE file_id = ? AND owner_id = ?",
                    (filename, updated_at.isoformat(), file_id, owner_id)
                )
                conn.commit()
                return cursor.rowcount > 0

    @staticmethod
    def delete_file(file_id: str, owner_id: str) -> bool:
        logger.debug(f"Deleting file metadata [file_id={file_id}]")
        with translate_db_errors(
            ErrorCodes.DELETE_FROM_DB, "error occurred when deleting file information from database"
        ):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM file_tags WHERE file_id = ?", (file_id,))
                cursor.execute(
                    "DELETE FROM files WHERE file_id = ? AND owner_id = ?",
                    (file_id, owner_id)
                )
                conn.commit()
                return cursor.rowcount > 0

    @staticmethod
    def list_files(
        page_request: PageRequest,
        owner_id: Optional[str] = None,
        visibility: Optional[Visibility] = None,
        tags: Optional[Set[str]] = None,
    ) -> Page[FileRecord]:
        """
        Page through files matching every given filter.

        Args:
            page_request: Page index, size and sort fields
            owner_id: Only files of this owner
            visibility: Only files with this visibility
            tags: Only files carrying at least one of these tags

        Returns:
            Page of FileRecord with the total count of matching files
        """
        conditions = []
        params: list = []

        if owner_id is not None:
            conditions.append("f.owner_id = ?")
            params.append(owner_id)

        if visibility is not None:
            conditions.append("f.visibility = ?")
            params.append(visibility.value)

        if tags:
            tag_list = sorted(tags)
            placeholders = ','.join('?' for _ in tag_list)
            conditions.append(
                f"EXISTS (SELECT 1 FROM file_tags t WHERE t.file_id = f.file_id AND t.tag IN ({placeholders}))"
            )
            params.extend(tag_list)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        order_by = build_order_by(page_request.sort, SORTABLE_COLUMNS, tiebreaker="file_id")

        with translate_db_errors(ErrorCodes.INTERNAL_SERVER, "Error occurred when listing files"):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(f"SELECT COUNT(*) AS count FROM files f {where}", params)
                total = cursor.fetchone()["count"]

                cursor.execute(
                    f"SELECT {FILE_COLUMNS} FROM files f {where} {order_by} LIMIT ? OFFSET ?",
                    params + [page_request.size, page_request.offset]
                )
                rows = cursor.fetchall()
                tags_by_file = _load_tags(conn, [row["file_id"] for row in rows])

                content = [_row_to_record(row, tags_by_file[row["file_id"]]) for row in rows]

        return Page(content=content, total_elements=total, page=page_request.page, size=page_request.size)
