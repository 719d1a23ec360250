import logging
import sqlite3
from typing import List

from book import Book
from database import ConnectionPool

logger = logging.getLogger(__name__)

SQLITE_MIN_INTEGER = -2 ** 63
SQLITE_MAX_INTEGER = 2 ** 63 - 1


class LibraryError(Exception):
    """Base class for failures surfaced by the data access layer."""


class ConstraintViolation(LibraryError):
    pass


class ConnectivityFailure(LibraryError):
    pass


class Library:
    """Issues parameterized queries against the books table."""

    def __init__(self, pool: ConnectionPool) -> None:
        self.pool = pool

    # ------------------------- Reads ------------------------- #
    def list_all(self) -> List[Book]:
        rows = self._query("SELECT id, title, author FROM books ORDER BY id")
        return [Book.from_dict(dict(row)) for row in rows]

    def get_by_id(self, book_id: int) -> List[Book]:
        """Return a list holding the matching book, or an empty list."""
        if not _storable_id(book_id):
            return []
        rows = self._query("SELECT id, title, author FROM books WHERE id = ?", (book_id,))
        return [Book.from_dict(dict(row)) for row in rows]

    # ------------------------- Writes ------------------------- #
    def insert(self, title: str, author: str) -> int:
        cursor = self._execute("INSERT INTO books (title, author) VALUES (?, ?)", (title, author))
        return cursor.lastrowid

    def update_by_id(self, book_id: int, title: str, author: str) -> int:
        if not _storable_id(book_id):
            return 0
        cursor = self._execute(
            "UPDATE books SET title = ?, author = ? WHERE id = ?",
            (title, author, book_id)
        )
        return cursor.rowcount

    def delete_by_id(self, book_id: int) -> int:
        if not _storable_id(book_id):
            return 0
        cursor = self._execute("DELETE FROM books WHERE id = ?", (book_id,))
        return cursor.rowcount

    # ------------------------- Helpers ------------------------- #
    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            with self.pool.connection() as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise _translate(exc) from exc

    def _execute(self, sql: str, params: tuple) -> sqlite3.Cursor:
        try:
            with self.pool.connection() as conn:
                try:
                    cursor = conn.execute(sql, params)
                    conn.commit()
                except (sqlite3.Error, UnicodeEncodeError):
                    conn.rollback()
                    raise
                return cursor
        except (sqlite3.Error, UnicodeEncodeError) as exc:
            raise _translate(exc) from exc


def _storable_id(book_id: int) -> bool:
    # SQLite INTEGER is a signed 64-bit value; anything wider cannot be a row id
    return SQLITE_MIN_INTEGER <= book_id <= SQLITE_MAX_INTEGER


def _translate(exc: Exception) -> LibraryError:
    logger.error("Database error: %s", exc)
    # Text that cannot be stored as UTF-8 is rejected like any other bad column value
    if isinstance(exc, (sqlite3.IntegrityError, UnicodeEncodeError)):
        return ConstraintViolation(str(exc))
    return ConnectivityFailure(str(exc))
