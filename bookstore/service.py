"""Cache-aside access to books.

Reads check the cache first and populate it on a miss. Writes go to the
store and then invalidate the cached record and the cached collection.
Cache failures never change a result; store connection failures propagate.
"""
import logging
from typing import Any, List, Optional

from bookstore.cache import COLLECTION_KEY, book_key
from bookstore.errors import DuplicateIsbnError, RowRejectedError
from bookstore.metrics import cache_requests_total
from bookstore.models import Book, Outcome, WriteResult
from bookstore.validation import validate_book

logger = logging.getLogger(__name__)


class BookService:
    """Coordinates the store and the cache for book reads and writes."""

    def __init__(self, db, cache, ttl: int = 300):
        """
        Args:
            db: Store gateway (bookstore.database.Database or compatible)
            cache: Cache gateway (bookstore.cache.BookCache or compatible)
            ttl: Seconds cached snapshots live
        """
        self.db = db
        self.cache = cache
        self.ttl = ttl

    def get_book(self, book_id: int) -> Optional[Book]:
        """Get one book, or None if it doesn't exist."""
        key = book_key(book_id)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                book = Book.from_dict(cached)
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            else:
                cache_requests_total.labels(kind="book", result="hit").inc()
                logger.info(f"Cache hit for book {book_id}")
                return book

        cache_requests_total.labels(kind="book", result="miss").inc()
        book = self.db.fetch_by_id(book_id)
        if book is None:
            logger.warning(f"Book {book_id} not found")
            return None

        self.cache.set(key, book.to_dict(), self.ttl)
        return book

    def list_books(self) -> List[Book]:
        """All books, newest first."""
        cached = self.cache.get(COLLECTION_KEY)
        if cached is not None:
            try:
                if not isinstance(cached, list):
                    raise TypeError(f"Expected a list of books, got {type(cached).__name__}")
                books = [Book.from_dict(item) for item in cached]
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                logger.warning(f"Discarding unreadable cache entry {COLLECTION_KEY}: {e}")
            else:
                cache_requests_total.labels(kind="collection", result="hit").inc()
                logger.info("Cache hit for all books")
                return books

        cache_requests_total.labels(kind="collection", result="miss").inc()
        books = self.db.fetch_all()
        self.cache.set(COLLECTION_KEY, [book.to_dict() for book in books], self.ttl)
        logger.info(f"Fetched {len(books)} books from database")
        return books

    def create_book(self, payload: Any) -> WriteResult:
        """Validate and insert a book; the result echoes the stored fields."""
        result, book = validate_book(payload, require_all=True)
        if not result.ok:
            logger.info(f"Rejected new book: {result.reason}")
            return WriteResult(Outcome.INVALID, reason=result.reason)

        try:
            book_id = self.db.insert(book)
        except DuplicateIsbnError as e:
            logger.warning(f"Duplicate ISBN {book.isbn}")
            return WriteResult(Outcome.CONFLICT, reason=str(e))
        except RowRejectedError as e:
            logger.warning(str(e))
            return WriteResult(Outcome.INVALID, reason=str(e))

        self.cache.invalidate()
        logger.info(f"Book created: {book_id} ({book.title})")
        return WriteResult(Outcome.OK, data={"id": book_id, **book.to_dict()})

    def update_book(self, book_id: int, payload: Any) -> WriteResult:
        """Validate and overwrite every field of a book."""
        result, book = validate_book(payload, require_all=False)
        if not result.ok:
            logger.info(f"Rejected update of book {book_id}: {result.reason}")
            return WriteResult(Outcome.INVALID, reason=result.reason)

        try:
            updated = self.db.update(book_id, book)
        except DuplicateIsbnError as e:
            logger.warning(f"Duplicate ISBN {book.isbn} on update of book {book_id}")
            return WriteResult(Outcome.CONFLICT, reason=str(e))
        except RowRejectedError as e:
            logger.warning(str(e))
            return WriteResult(Outcome.INVALID, reason=str(e))

        if not updated:
            logger.warning(f"Book {book_id} not found for update")
            return WriteResult(Outcome.NOT_FOUND, reason="Book not found")

        self.cache.invalidate(book_key(book_id))
        logger.info(f"Book updated: {book_id}")
        return WriteResult(Outcome.OK, data={"id": book_id, **book.to_dict()})

    def delete_book(self, book_id: int) -> WriteResult:
        """Delete a book."""
        if not self.db.delete(book_id):
            logger.warning(f"Book {book_id} not found for deletion")
            return WriteResult(Outcome.NOT_FOUND, reason="Book not found")

        self.cache.invalidate(book_key(book_id))
        logger.info(f"Book deleted: {book_id}")
        return WriteResult(Outcome.OK, data={"id": book_id})
