"""HTTP API for the book inventory."""
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Path, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookstore import metrics
from bookstore.cache import BookCache
from bookstore.config import Config
from bookstore.database import Database
from bookstore.errors import StoreConnectionError
from bookstore.models import Outcome, WriteResult
from bookstore.retry import RetryPolicy
from bookstore.service import BookService

logger = logging.getLogger(__name__)

MAX_ID = 2 ** 31 - 1

STATUS_BY_OUTCOME = {
    Outcome.INVALID: 400,
    Outcome.NOT_FOUND: 404,
    Outcome.CONFLICT: 409,
}

router = APIRouter(prefix="/api")


def get_service(request: Request) -> BookService:
    return request.app.state.service


def error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def write_response(result: WriteResult, status_code: int, message: str) -> JSONResponse:
    """Map a write result to a response."""
    if not result.ok:
        return error(STATUS_BY_OUTCOME[result.outcome], result.reason)
    return JSONResponse(status_code=status_code, content={**result.data, "message": message})


# Health

@router.get("/health", tags=["Health"])
def health(request: Request):
    """Liveness probe."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": time.monotonic() - request.app.state.started_at
    }


@router.get("/ready", tags=["Health"])
def ready(request: Request):
    """Readiness probe; only the database is required."""
    service = get_service(request)
    cache_status = "connected" if service.cache.ping() else "disconnected"
    if not service.db.ping():
        logger.error("Readiness check failed: database unavailable")
        return JSONResponse(status_code=503, content={
            "status": "not ready",
            "database": "disconnected",
            "cache": cache_status
        })
    return {
        "status": "ready",
        "database": "connected",
        "cache": cache_status,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/metrics", tags=["Metrics"])
def prometheus_metrics():
    """Metrics in Prometheus format."""
    return Response(generate_latest(metrics.registry), media_type=CONTENT_TYPE_LATEST)


# Books

@router.get("/books", tags=["Books"])
def list_books(service: BookService = Depends(get_service)):
    """All books, newest first."""
    return [book.to_dict() for book in service.list_books()]


@router.get("/books/{book_id}", tags=["Books"])
def get_book(
    book_id: int = Path(..., le=MAX_ID),
    service: BookService = Depends(get_service)
):
    book = service.get_book(book_id)
    if book is None:
        return error(404, "Book not found")
    return book.to_dict()


@router.post("/books", status_code=201, tags=["Books"])
def create_book(
    payload: Any = Body(...),
    service: BookService = Depends(get_service)
):
    """Add a book; title, author and isbn are required."""
    return write_response(service.create_book(payload), 201, "Book created successfully")


@router.put("/books/{book_id}", tags=["Books"])
def update_book(
    book_id: int = Path(..., le=MAX_ID),
    payload: Any = Body(...),
    service: BookService = Depends(get_service)
):
    """Overwrite every field of a book."""
    return write_response(service.update_book(book_id, payload), 200, "Book updated successfully")


@router.delete("/books/{book_id}", tags=["Books"])
def delete_book(
    book_id: int = Path(..., le=MAX_ID),
    service: BookService = Depends(get_service)
):
    result = service.delete_book(book_id)
    if not result.ok:
        return error(STATUS_BY_OUTCOME[result.outcome], result.reason)
    return {"message": "Book deleted successfully"}


def create_app(
    db: Database,
    cache: BookCache,
    ttl: int = 300,
    retry_policy: Optional[RetryPolicy] = None,
    connect_on_startup: bool = True,
    cors_origins: Optional[List[str]] = None
) -> FastAPI:
    """
    Build the application around already-constructed gateways.

    Args:
        db: Store gateway
        cache: Cache gateway
        ttl: Cache TTL in seconds
        retry_policy: Startup retry for the database connection
        connect_on_startup: Connect both gateways when the app starts
        cors_origins: Origins allowed to call the API from a browser (default: any)

    Startup fails if the database cannot be reached; the cache is optional.
    Both gateways are closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if connect_on_startup:
            await run_in_threadpool(db.connect, retry_policy)
            await run_in_threadpool(cache.connect)
        logger.info(
            f"Bookstore API started (cache: "
            f"{'connected' if cache.is_connected else 'disconnected'})"
        )
        yield
        logger.info("Shutting down gracefully...")
        cache.close()
        db.close()

    app = FastAPI(
        title="Bookstore API",
        version="1.0.0",
        description="Book inventory management API with Redis caching",
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=lifespan
    )
    app.state.service = BookService(db, cache, ttl=ttl)
    app.state.started_at = time.monotonic()
    app.include_router(router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_and_logging(request: Request, call_next):
        correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        route = request.scope.get("route")
        route_path = route.path if route is not None else "unmatched"
        status_code = str(response.status_code)
        metrics.http_requests_total.labels(request.method, route_path, status_code).inc()
        metrics.http_request_duration_seconds.labels(
            request.method, route_path, status_code
        ).observe(duration)

        response.headers["X-Correlation-ID"] = correlation_id
        logger.info(
            f"[{correlation_id}] {request.method} {request.url.path} "
            f"{response.status_code} {duration:.3f}s"
        )
        return response

    @app.exception_handler(StoreConnectionError)
    async def store_unavailable(request: Request, exc: StoreConnectionError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return error(500, "Database unavailable")

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        return error(400, "Invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error(404, "Endpoint not found")
        return error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return error(500, "Internal server error")

    return app


def build_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application from configuration."""
    config = config or Config()
    db = Database(
        config.DATABASE_URL,
        max_conn=config.DB_POOL_SIZE,
        acquire_timeout=config.DB_POOL_TIMEOUT
    )
    cache = BookCache(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        default_ttl=config.CACHE_TTL,
        timeout=config.REDIS_TIMEOUT
    )
    retry_policy = RetryPolicy(
        max_attempts=config.DB_CONNECT_RETRIES,
        delay=config.DB_CONNECT_DELAY
    )
    return create_app(
        db,
        cache,
        ttl=config.CACHE_TTL,
        retry_policy=retry_policy,
        cors_origins=config.CORS_ORIGINS
    )
