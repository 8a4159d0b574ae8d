"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from gateway.config import DATABASE_PATH


def init_database() -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS file_partials (
                partial_id INTEGER PRIMARY KEY AUTOINCREMENT,
                disc_channel_id TEXT NOT NULL,
                disc_message_id TEXT NOT NULL,
                directory_id INTEGER NOT NULL,
                part_name TEXT NOT NULL,
                part_number INTEGER NOT NULL,
                part_size INTEGER NOT NULL,
                original_filename TEXT NOT NULL,
                file_description TEXT NOT NULL DEFAULT '',
                mime_type TEXT NOT NULL,
                uploaded_via_webhook INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                UNIQUE(part_name, directory_id)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_partials_original
            ON file_partials(original_filename, directory_id, part_number)
        """)

        conn.commit()


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
