import logging
import queue
import sqlite3
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


def _open_connection(db_file: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_file, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # WAL lets readers proceed while another connection writes
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


class ConnectionPool:
    """A bounded pool of SQLite connections shared by all request handlers.

    Built once at startup and handed to the data access layer explicitly.
    When every pooled connection is in use an extra one is opened and
    closed again on release.
    """

    def __init__(self, db_file: str, size: int = 5) -> None:
        self.db_file = db_file
        self.size = size
        self._pool: "queue.Queue[sqlite3.Connection]" = queue.Queue(maxsize=size)
        self._closed = False
        for _ in range(size):
            self._pool.put(_open_connection(db_file))
        logger.info("Opened %d SQLite connections to %s", size, db_file)

    def acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise sqlite3.OperationalError("Connection pool is closed")
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            logger.debug("Pool exhausted, opening overflow connection")
            return _open_connection(self.db_file)

    def release(self, conn: sqlite3.Connection) -> None:
        if self._closed:
            conn.close()
            return
        try:
            self._pool.put_nowait(conn)
        except queue.Full:
            conn.close()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """Close every idle connection; connections still borrowed close on release."""
        self._closed = True
        while True:
            try:
                self._pool.get_nowait().close()
            except queue.Empty:
                break
        logger.info("Closed connection pool for %s", self.db_file)


def create_tables(pool: ConnectionPool) -> None:
    """Creates the books table if it does not exist."""
    with pool.connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                author TEXT NOT NULL
            )
        """)
        conn.commit()


def initialize_database(db_file: str, pool_size: int = 5) -> ConnectionPool:
    """Opens the pool and makes sure the schema exists."""
    pool = ConnectionPool(db_file, size=pool_size)
    create_tables(pool)
    return pool
