"""Tag registry repository for database operations."""

from datetime import datetime
from types import MappingProxyType
from typing import Optional

from common.logging_config import get_logger
from ttstorage.database import get_db_connection
from ttstorage.exceptions import ErrorCodes
from ttstorage.repositories.base import build_order_by, translate_db_errors
from ttstorage.types import Page, PageRequest, TagRecord

logger = get_logger(__name__)

SORTABLE_COLUMNS = MappingProxyType({
    "tagName": "tag_name",
    "createdAt": "created_at",
})


class TagRepository:
    @staticmethod
    def insert_if_absent(tag_name: str, created_at: datetime) -> bool:
        """
        Register a tag unless it already exists.

        Returns:
            True if the tag was inserted, False if it was already registered
        """
        with translate_db_errors(ErrorCodes.INTERNAL_SERVER, f"Error occurred when registering tag '{tag_name}'"):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "INSERT OR IGNORE INTO tags (tag_name, created_at) VALUES (?, ?)",
                    (tag_name, created_at.isoformat())
                )
                conn.commit()
                return cursor.rowcount > 0

    @staticmethod
    def find_by_name(tag_name: str) -> Optional[TagRecord]:
        with translate_db_errors(ErrorCodes.INTERNAL_SERVER, f"Error occurred when reading tag '{tag_name}'"):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT tag_name, created_at FROM tags WHERE tag_name = ?", (tag_name,))
                row = cursor.fetchone()
                if row is None:
                    return None
                return TagRecord(tag_name=row["tag_name"], created_at=datetime.fromisoformat(row["created_at"]))

    @staticmethod
    def search_tags(page_request: PageRequest, query: Optional[str] = None) -> Page[str]:
        where = ""
        params: list = []
        if query:
            where = "WHERE instr(lower(tag_name), lower(?)) > 0"
            params.append(query)

        order_by = build_order_by(page_request.sort, SORTABLE_COLUMNS, tiebreaker="tag_name")

        with translate_db_errors(ErrorCodes.INTERNAL_SERVER, "Error occurred when searching tags"):
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(f"SELECT COUNT(*) AS count FROM tags {where}", params)
                total = cursor.fetchone()["count"]

                cursor.execute(
                    f"SELECT tag_name FROM tags {where} {order_by} LIMIT ? OFFSET ?",
                    params + [page_request.size, page_request.offset]
                )
                content = [row["tag_name"] for row in cursor.fetchall()]

        return Page(content=content, total_elements=total, page=page_request.page, size=page_request.size)
