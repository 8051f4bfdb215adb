"""Tests for the HTTP API, using in-memory gateways."""
import pytest
from fastapi.testclient import TestClient

from bookstore.api import create_app
from tests.fakes import FakeCache, FakeDatabase

ORWELL = {"title": "1984", "author": "George Orwell", "isbn": "0451524935", "price": 9.99, "stock": 12}


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def client(db, cache):
    app = create_app(db, cache, ttl=300)
    with TestClient(app) as client:
        yield client


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ready(client):
    response = client.get("/api/ready")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"
    assert response.json()["cache"] == "connected"


def test_ready_without_cache(db):
    """Test that readiness doesn't require the cache."""
    app = create_app(db, FakeCache(connected=False))
    with TestClient(app) as client:
        response = client.get("/api/ready")

    assert response.status_code == 200
    assert response.json()["cache"] == "disconnected"


def test_not_ready_without_database(client, db):
    db.available = False

    response = client.get("/api/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "disconnected"


def test_create_book(client):
    response = client.post("/api/books", json=ORWELL)

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 1
    assert body["title"] == "1984"
    assert body["price"] == 9.99
    assert body["message"] == "Book created successfully"


def test_create_then_get(client):
    book_id = client.post("/api/books", json=ORWELL).json()["id"]

    response = client.get(f"/api/books/{book_id}")

    assert response.status_code == 200
    body = response.json()
    for field in ("title", "author", "isbn", "price", "stock"):
        assert body[field] == ORWELL[field]
    assert body["created_at"] is not None


def test_create_invalid_isbn(client):
    response = client.post("/api/books", json={**ORWELL, "isbn": "1234"})

    assert response.status_code == 400
    assert "ISBN" in response.json()["error"]


def test_create_missing_fields(client):
    response = client.post("/api/books", json={"title": "1984"})

    assert response.status_code == 400
    assert response.json()["error"] == "Title, author, and ISBN are required"


def test_create_duplicate_isbn(client):
    client.post("/api/books", json=ORWELL)

    response = client.post("/api/books", json=ORWELL)

    assert response.status_code == 409


def test_create_malformed_json(client):
    response = client.post(
        "/api/books",
        content="{not json",
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_create_non_object_body(client):
    response = client.post("/api/books", json=["1984"])

    assert response.status_code == 400


def test_list_books(client):
    client.post("/api/books", json=ORWELL)
    client.post("/api/books", json={**ORWELL, "title": "Animal Farm", "isbn": "9780451526342"})

    response = client.get("/api/books")

    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["Animal Farm", "1984"]


def test_get_missing_book(client):
    response = client.get("/api/books/42")

    assert response.status_code == 404
    assert response.json() == {"error": "Book not found"}


def test_get_non_integer_id(client):
    assert client.get("/api/books/abc").status_code == 400


def test_update_book(client):
    book_id = client.post("/api/books", json=ORWELL).json()["id"]
    client.get(f"/api/books/{book_id}")

    response = client.put(f"/api/books/{book_id}", json={**ORWELL, "stock": 0})

    assert response.status_code == 200
    assert response.json()["stock"] == 0
    assert client.get(f"/api/books/{book_id}").json()["stock"] == 0


def test_update_missing_book(client):
    response = client.put("/api/books/42", json=ORWELL)

    assert response.status_code == 404


def test_update_invalid_price(client):
    book_id = client.post("/api/books", json=ORWELL).json()["id"]

    response = client.put(f"/api/books/{book_id}", json={**ORWELL, "price": 10000.01})

    assert response.status_code == 400


def test_delete_book(client):
    book_id = client.post("/api/books", json=ORWELL).json()["id"]

    response = client.delete(f"/api/books/{book_id}")

    assert response.status_code == 200
    assert response.json() == {"message": "Book deleted successfully"}
    assert client.get(f"/api/books/{book_id}").status_code == 404


def test_delete_missing_book(client):
    assert client.delete("/api/books/42").status_code == 404


def test_store_failure_is_500(client, db):
    db.available = False

    assert client.get("/api/books").status_code == 500
    assert client.get("/api/books/1").status_code == 500
    assert client.post("/api/books", json=ORWELL).status_code == 500


def test_cache_down_serves_from_store(db):
    """Test that every route works with the cache disconnected."""
    app = create_app(db, FakeCache(connected=False))
    with TestClient(app) as client:
        book_id = client.post("/api/books", json=ORWELL).json()["id"]

        assert client.get(f"/api/books/{book_id}").json()["title"] == "1984"
        assert len(client.get("/api/books").json()) == 1


def test_unknown_route(client):
    response = client.get("/api/nothing")

    assert response.status_code == 404
    assert response.json() == {"error": "Endpoint not found"}


def test_correlation_id(client):
    echoed = client.get("/api/health", headers={"X-Correlation-ID": "abc-123"})
    generated = client.get("/api/health")

    assert echoed.headers["X-Correlation-ID"] == "abc-123"
    assert generated.headers["X-Correlation-ID"]


def test_metrics(client):
    client.get("/api/health")

    response = client.get("/api/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_lifespan_connects_and_closes(db, cache):
    """Test that startup connects the store and shutdown closes both gateways."""
    app = create_app(db, cache)

    with TestClient(app):
        assert db.connected

    assert db.closed
    assert cache.closed


def test_startup_fails_without_database(cache):
    db = FakeDatabase()
    db.available = False
    app = create_app(db, cache)

    with pytest.raises(Exception):
        with TestClient(app):
            pass


def test_cors_headers(client):
    """Test that browsers on another origin may call the API."""
    response = client.get("/api/books", headers={"Origin": "http://frontend.example"})

    assert response.headers["access-control-allow-origin"] in ("*", "http://frontend.example")


def test_cors_preflight_restricted_origins(db, cache):
    app = create_app(db, cache, cors_origins=["http://frontend.example"])
    with TestClient(app) as client:
        allowed = client.options("/api/books", headers={
            "Origin": "http://frontend.example",
            "Access-Control-Request-Method": "POST",
        })
        denied = client.options("/api/books", headers={
            "Origin": "http://evil.example",
            "Access-Control-Request-Method": "POST",
        })

    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == "http://frontend.example"
    assert "access-control-allow-origin" not in denied.headers


def test_metrics_include_runtime_collectors(client):
    """Test that process and platform metrics are exported."""
    response = client.get("/api/metrics")

    assert "python_info" in response.text
