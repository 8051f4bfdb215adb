"""Database layer for book storage."""
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional
import logging

import psycopg2
import psycopg2.errors
from psycopg2 import pool

from bookstore.errors import DuplicateIsbnError, RowRejectedError, StoreConnectionError
from bookstore.models import Book, BookInput
from bookstore.retry import RetryPolicy

logger = logging.getLogger(__name__)

BOOK_COLUMNS = "id, title, author, isbn, price, stock, created_at, updated_at"


class Database:
    """PostgreSQL book store with a bounded connection pool."""

    def __init__(
        self,
        connection_string: str,
        min_conn: int = 1,
        max_conn: int = 10,
        acquire_timeout: float = 5.0,
        connect_timeout: int = 5
    ):
        """
        Configure the store; no connection is made until connect().

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
            acquire_timeout: Seconds to wait for a free pooled connection
            connect_timeout: Seconds to wait when opening a new connection
        """
        self.connection_string = connection_string
        self.min_conn = min_conn
        self.max_conn = max_conn
        self.acquire_timeout = acquire_timeout
        self.connect_timeout = connect_timeout
        self.connection_pool: Optional[pool.ThreadedConnectionPool] = None
        # ThreadedConnectionPool fails immediately when exhausted; callers queue here instead
        self._slots = threading.BoundedSemaphore(max_conn)

    def connect(self, retry_policy: Optional[RetryPolicy] = None):
        """
        Open the pool and verify connectivity, retrying on failure.

        Raises:
            StoreConnectionError: if every attempt failed
        """
        policy = retry_policy or RetryPolicy()
        policy.call(
            self._open_pool,
            retry_on=(StoreConnectionError,),
            description="Database connection"
        )
        logger.info("Database connection pool created successfully")

    def _open_pool(self):
        try:
            self.connection_pool = pool.ThreadedConnectionPool(
                self.min_conn,
                self.max_conn,
                self.connection_string,
                connect_timeout=self.connect_timeout
            )
        except psycopg2.Error as e:
            raise StoreConnectionError(f"Database unavailable: {e}") from e

        if not self.ping():
            self.close()
            raise StoreConnectionError("Database did not answer ping")

    @contextmanager
    def _connection(self) -> Iterator:
        """Borrow a pooled connection, waiting up to acquire_timeout."""
        if self.connection_pool is None:
            raise StoreConnectionError("Database is not connected")

        if not self._slots.acquire(timeout=self.acquire_timeout):
            raise StoreConnectionError(
                f"No database connection available within {self.acquire_timeout}s"
            )
        try:
            try:
                conn = self.connection_pool.getconn()
            except (pool.PoolError, psycopg2.OperationalError) as e:
                raise StoreConnectionError(f"Database unavailable: {e}") from e

            broken = False
            try:
                yield conn
            except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
                broken = True
                raise StoreConnectionError(f"Database unavailable: {e}") from e
            finally:
                self.connection_pool.putconn(conn, close=broken or bool(conn.closed))
        finally:
            self._slots.release()

    def init_schema(self):
        """Create the books table if it doesn't exist."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS books (
                        id SERIAL PRIMARY KEY,
                        title VARCHAR(255) NOT NULL,
                        author VARCHAR(255) NOT NULL,
                        isbn VARCHAR(32) NOT NULL UNIQUE,
                        price NUMERIC(10, 2) NOT NULL DEFAULT 0
                            CHECK (price >= 0 AND price <= 10000),
                        stock INTEGER NOT NULL DEFAULT 0
                            CHECK (stock >= 0 AND stock <= 100000),
                        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cur.execute("""
                    CREATE INDEX IF NOT EXISTS idx_books_created
                    ON books (created_at DESC)
                """)

                conn.commit()
                logger.info("Database schema initialized successfully")

    def fetch_all(self) -> List[Book]:
        """All books, newest first."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"""
                    SELECT {BOOK_COLUMNS}
                    FROM books
                    ORDER BY created_at DESC, id DESC
                """)
                return [Book(*row) for row in cur.fetchall()]

    def fetch_by_id(self, book_id: int) -> Optional[Book]:
        """Get a book by ID, or None if it doesn't exist."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"""
                    SELECT {BOOK_COLUMNS}
                    FROM books WHERE id = %s
                """, (book_id,))

                row = cur.fetchone()
                if row:
                    return Book(*row)
                return None

    def insert(self, book: BookInput) -> int:
        """
        Insert a book.

        Args:
            book: Validated book fields

        Returns:
            The new book's ID

        Raises:
            DuplicateIsbnError: if the ISBN is already stored
            RowRejectedError: if the store refuses the row
        """
        with self._connection() as conn:
            with self._constraint_errors(conn):
                with conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO books (title, author, isbn, price, stock)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING id
                    """, (book.title, book.author, book.isbn, book.price, book.stock))
                    book_id = cur.fetchone()[0]
                conn.commit()
            return book_id

    def update(self, book_id: int, book: BookInput) -> bool:
        """
        Overwrite every field of a book.

        Returns:
            False if no book has this ID
        """
        with self._connection() as conn:
            with self._constraint_errors(conn):
                with conn.cursor() as cur:
                    cur.execute("""
                        UPDATE books
                        SET title = %s, author = %s, isbn = %s, price = %s, stock = %s,
                            updated_at = CURRENT_TIMESTAMP
                        WHERE id = %s
                    """, (book.title, book.author, book.isbn, book.price, book.stock, book_id))
                    updated = cur.rowcount
                conn.commit()
            return updated > 0

    def delete(self, book_id: int) -> bool:
        """
        Delete a book.

        Returns:
            False if no book has this ID
        """
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM books WHERE id = %s", (book_id,))
                deleted = cur.rowcount
            conn.commit()
            return deleted > 0

    @staticmethod
    @contextmanager
    def _constraint_errors(conn) -> Iterator[None]:
        """Roll back and map constraint violations to domain errors."""
        try:
            yield
        except psycopg2.errors.UniqueViolation as e:
            conn.rollback()
            raise DuplicateIsbnError("Book with this ISBN already exists") from e
        except (psycopg2.IntegrityError, psycopg2.DataError) as e:
            conn.rollback()
            raise RowRejectedError(f"Book rejected by store: {str(e).strip()}") from e

    def count(self) -> int:
        """Number of stored books."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM books")
                return cur.fetchone()[0]

    def ping(self) -> bool:
        """Check that a connection can be borrowed and answers a query."""
        try:
            with self._connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
            return True
        except (StoreConnectionError, psycopg2.Error) as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            self.connection_pool = None
            logger.info("Database connection pool closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
