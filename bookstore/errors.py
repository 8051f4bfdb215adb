"""Errors raised by the storage layer."""


class BookstoreError(Exception):
    """Base class for bookstore errors."""


class StoreConnectionError(BookstoreError):
    """The store is unreachable or no pooled connection became available."""


class DuplicateIsbnError(BookstoreError):
    """A book with the same ISBN already exists."""


class RowRejectedError(BookstoreError):
    """The store refused the row (check or not-null constraint)."""
