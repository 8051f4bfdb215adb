#!/usr/bin/env python3
"""Bookstore admin CLI - serve the API and inspect the inventory."""
import argparse
import json
import sys
import logging

import uvicorn
from tabulate import tabulate

from bookstore.api import build_app
from bookstore.cache import BookCache
from bookstore.config import Config
from bookstore.database import Database
from bookstore.errors import StoreConnectionError
from bookstore.retry import RetryPolicy
from bookstore.service import BookService

logger = logging.getLogger(__name__)


def setup_logging(config: Config):
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def setup_database(config: Config) -> Database:
    """Connect to the database, retrying as configured."""
    db = Database(
        config.DATABASE_URL,
        max_conn=config.DB_POOL_SIZE,
        acquire_timeout=config.DB_POOL_TIMEOUT
    )
    db.connect(RetryPolicy(config.DB_CONNECT_RETRIES, config.DB_CONNECT_DELAY))
    return db


def setup_cache(config: Config) -> BookCache:
    """Connect to Redis; a failed connection leaves caching disabled."""
    cache = BookCache(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        default_ttl=config.CACHE_TTL,
        timeout=config.REDIS_TIMEOUT
    )
    cache.connect()
    return cache


def serve(args, config: Config):
    """Run the API server."""
    app = build_app(config)
    uvicorn.run(app, host=args.host, port=args.port or config.PORT, log_config=None)


def init_db(args, config: Config):
    """Create the schema."""
    with setup_database(config) as db:
        db.init_schema()
        print("✅ Schema ready")


def display_books(books, format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["ID", "Title", "Author", "ISBN", "Price", "Stock"]
        rows = [
            [
                book.id,
                book.title[:50] + "..." if len(book.title) > 50 else book.title,
                book.author[:30] + "..." if len(book.author) > 30 else book.author,
                book.isbn,
                f"{book.price:.2f}",
                book.stock
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2))


def list_books(args, config: Config):
    """List all books through the cache."""
    cache = setup_cache(config)
    try:
        with setup_database(config) as db:
            books = BookService(db, cache, ttl=config.CACHE_TTL).list_books()
            display_books(books, args.format)
    finally:
        cache.close()


def show_book(args, config: Config):
    """Show a single book."""
    cache = setup_cache(config)
    try:
        with setup_database(config) as db:
            book = BookService(db, cache, ttl=config.CACHE_TTL).get_book(args.id)
            if book is None:
                print(f"Book {args.id} not found")
                sys.exit(1)
            display_books([book], args.format)
    finally:
        cache.close()


def show_stats(args, config: Config):
    """Show inventory statistics."""
    cache = setup_cache(config)
    try:
        with setup_database(config) as db:
            total = db.count()

        print("\n" + "=" * 50)
        print("INVENTORY STATISTICS")
        print("=" * 50)
        print(f"Total books stored: {total}")
        print(f"Cache: {'connected' if cache.is_connected else 'disconnected'}")
        print(f"Cache TTL: {config.CACHE_TTL}s")
        print("=" * 50 + "\n")
    finally:
        cache.close()


def flush_cache(args, config: Config):
    """Drop every cached book and the cached collection."""
    cache = setup_cache(config)
    try:
        if not cache.is_connected:
            print("Cache unavailable, nothing to flush")
            sys.exit(1)
        cache.invalidate("book:*")
        print("✅ Cache flushed")
    finally:
        cache.close()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Bookstore - inventory API and admin tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the API
  %(prog)s serve --port 3000

  # Create tables
  %(prog)s init-db

  # List books as JSON
  %(prog)s list --format json

  # Show statistics
  %(prog)s stats
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port (default: $PORT or 3000)")

    subparsers.add_parser("init-db", help="Create the database schema")

    # List command
    list_parser = subparsers.add_parser("list", help="List books")
    list_parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")

    # Show command
    show_parser = subparsers.add_parser("show", help="Show one book")
    show_parser.add_argument("id", type=int, help="Book ID")
    show_parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")

    subparsers.add_parser("stats", help="Show inventory statistics")
    subparsers.add_parser("flush-cache", help="Invalidate all cached books")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()
    setup_logging(config)

    commands = {
        "serve": serve,
        "init-db": init_db,
        "list": list_books,
        "show": show_book,
        "stats": show_stats,
        "flush-cache": flush_cache,
    }

    try:
        commands[args.command](args, config)

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except StoreConnectionError as e:
        logger.error(f"❌ Could not connect to database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
