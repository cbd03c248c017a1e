"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ttstorage.config import DATABASE_PATH


def init_database() -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS files (
                file_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                filename TEXT NOT NULL,
                checksum TEXT NOT NULL,
                size INTEGER NOT NULL,
                visibility TEXT NOT NULL CHECK (visibility IN ('PUBLIC', 'PRIVATE')),
                content_type TEXT NOT NULL,
                storage_key TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS file_tags (
                file_id TEXT NOT NULL,
                tag TEXT NOT NULL,
                PRIMARY KEY(file_id, tag),
                FOREIGN KEY(file_id) REFERENCES files(file_id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tags (
                tag_name TEXT PRIMARY KEY,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_files_owner_checksum_filename
            ON files(owner_id, checksum, filename)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_files_owner_filename ON files(owner_id, filename)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_files_visibility ON files(visibility)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_file_tags_tag ON file_tags(tag)
        """)

        conn.commit()


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(DATABASE_PATH, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def ping() -> None:
    with get_db_connection() as conn:
        conn.execute("SELECT 1")
