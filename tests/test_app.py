from fastapi.testclient import TestClient

from database import get_db
from main import app


def test_root(client):
    assert client.get("/").json() == {"message": "Rating Voyage API running"}


def test_database_check(client, db, shopper):
    body = client.get("/test").json()
    assert body["backend"] == "ok"
    assert body["database"] == "ok"
    assert body["name"] == "rating_voyage_test"
    assert "user" in body["collections"]


def test_unknown_route_uses_message_body(client):
    res = client.get("/api/nowhere")
    assert res.status_code == 404
    assert res.json() == {"message": "Not Found"}


def test_unexpected_failure_renders_server_error():
    def broken_db():
        raise RuntimeError("connection pool exhausted")

    app.dependency_overrides[get_db] = broken_db
    try:
        res = TestClient(app, raise_server_exceptions=False).get("/test")
    finally:
        app.dependency_overrides.clear()

    assert res.status_code == 500
    assert res.json() == {"message": "Server error"}
