"""Part catalog repository: where every uploaded part lives and in which order."""

import sqlite3
from typing import List, Optional

from common.logging_config import get_logger
from common.types import StoredFileSummary, StoredPart
from gateway.database import get_db_connection
from gateway.exceptions import CatalogError
from gateway.utils import get_current_timestamp, parse_timestamp

logger = get_logger(__name__)


def _row_to_stored_part(row: sqlite3.Row) -> StoredPart:
    return StoredPart(
        partial_id=row["partial_id"],
        channel_id=row["disc_channel_id"],
        message_id=row["disc_message_id"],
        directory_id=row["directory_id"],
        part_name=row["part_name"],
        sequence_index=row["part_number"],
        size_bytes=row["part_size"],
        original_filename=row["original_filename"],
        description=row["file_description"],
        mime_type=row["mime_type"],
        uploaded_via_channel=bool(row["uploaded_via_webhook"]),
        created_at=parse_timestamp(row["created_at"]),
    )


def _insert_part(conn: sqlite3.Connection, values: tuple) -> int:
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO file_partials (
            disc_channel_id, disc_message_id, directory_id, part_name,
            part_number, part_size, original_filename, file_description,
            mime_type, uploaded_via_webhook, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        values,
    )
    return cursor.lastrowid


class PartialRepository:
    @staticmethod
    def record_part(
        channel_id: str,
        message_id: str,
        directory_id: int,
        part_name: str,
        sequence_index: int,
        size_bytes: int,
        original_filename: str,
        description: str,
        mime_type: str,
        uploaded_via_channel: bool = True,
        conn=None,
    ) -> int:
        """
        Record one uploaded part.

        Returns:
            The new partial_id

        Raises:
            CatalogError: If the row could not be written
        """
        logger.debug(
            f"Recording part {part_name} [index={sequence_index}, directory_id={directory_id}]"
        )
        values = (
            channel_id,
            message_id,
            directory_id,
            part_name,
            sequence_index,
            size_bytes,
            original_filename,
            description,
            mime_type,
            int(uploaded_via_channel),
            get_current_timestamp(),
        )

        try:
            if conn is not None:
                return _insert_part(conn, values)
            with get_db_connection() as own_conn:
                partial_id = _insert_part(own_conn, values)
                own_conn.commit()
                return partial_id
        except sqlite3.Error as e:
            logger.error(f"Failed to record part {part_name}: {e}", exc_info=True)
            raise CatalogError(f"Failed to record part {part_name}: {e}") from e

    @staticmethod
    def list_parts(original_filename: str, directory_id: int) -> List[StoredPart]:
        """
        All parts of a logical file, ascending by sequence index.
        """
        try:
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT partial_id, disc_channel_id, disc_message_id, directory_id,
                           part_name, part_number, part_size, original_filename,
                           file_description, mime_type, uploaded_via_webhook, created_at
                    FROM file_partials
                    WHERE original_filename = ? AND directory_id = ?
                    ORDER BY part_number ASC
                    """,
                    (original_filename, directory_id)
                )
                return [_row_to_stored_part(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise CatalogError(f"Failed to fetch parts of {original_filename}: {e}") from e

    @staticmethod
    def name_exists(part_name: str, directory_id: int) -> bool:
        try:
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT COUNT(*) AS count
                    FROM file_partials
                    WHERE part_name = ? AND directory_id = ?
                    """,
                    (part_name, directory_id)
                )
                row = cursor.fetchone()
                return row is not None and row["count"] > 0
        except sqlite3.Error as e:
            raise CatalogError(f"Failed to check part name {part_name}: {e}") from e

    @staticmethod
    def delete_parts(original_filename: str, directory_id: int) -> int:
        """
        Delete every part row of a logical file.

        Returns:
            Number of rows removed
        """
        try:
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    DELETE FROM file_partials
                    WHERE original_filename = ? AND directory_id = ?
                    """,
                    (original_filename, directory_id)
                )
                conn.commit()
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            raise CatalogError(f"Failed to delete parts of {original_filename}: {e}") from e

        logger.info(f"Deleted {deleted} parts [original_filename={original_filename}, directory_id={directory_id}]")
        return deleted

    @staticmethod
    def list_grouped(directory_id: int, search: Optional[str] = None) -> List[StoredFileSummary]:
        """
        One summary per logical file in a directory, optionally filtered by a
        case-insensitive substring of the original filename.
        """
        sql = """
            SELECT
                original_filename,
                MAX(mime_type) AS mime_type,
                directory_id,
                MAX(created_at) AS created_at,
                SUM(part_size) AS size,
                COUNT(*) AS part_count,
                MAX(file_description) AS file_description
            FROM file_partials
            WHERE directory_id = ?
        """
        params: list = [directory_id]

        if search and search.strip():
            sql += " AND LOWER(original_filename) LIKE ?"
            params.append(f"%{search.strip().lower()}%")

        sql += """
            GROUP BY original_filename, directory_id
            ORDER BY original_filename ASC
        """

        try:
            with get_db_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(sql, params)
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise CatalogError(f"Failed to list files in directory {directory_id}: {e}") from e

        return [
            StoredFileSummary(
                original_filename=row["original_filename"],
                mime_type=row["mime_type"],
                directory_id=row["directory_id"],
                size=row["size"],
                part_count=row["part_count"],
                description=row["file_description"],
                created_at=parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]
