"""
Tests for Push API endpoints
"""
import psycopg
import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from unittest.mock import patch

from app.api.deps import get_current_user_id, get_db
from app.application.push_service import list_endpoints
from app.main import create_app
from factories import FakeGateway, add_endpoint, add_user


@pytest.fixture
def app(session_factory):
    """App wired to the test database, without the scheduler (lifespan is not entered)"""
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def authenticated_client(app):
    """Client with user 1 logged in"""
    app.dependency_overrides[get_current_user_id] = lambda: 1
    return TestClient(app)


@pytest.fixture
def fake_gateway():
    gw = FakeGateway()
    with patch("app.application.push_service.get_push_gateway", return_value=gw):
        yield gw


SUBSCRIPTION = {
    "endpoint": "https://fcm.googleapis.com/fcm/send/abc",
    "keys": {"p256dh": "BNc...", "auth": "tBH..."},
}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.text == "ok"


def test_ready_ok(client):
    with patch("app.main.check_db_connection"):
        response = client.get("/ready")
    assert response.status_code == 200


def test_ready_database_down(client):
    with patch("app.main.check_db_connection", side_effect=psycopg.OperationalError("down")):
        response = client.get("/ready")
    assert response.status_code == 503


def test_requires_session(client):
    response = client.post("/api/push/subscribe", json=SUBSCRIPTION)
    assert response.status_code == 401


def test_session_user_id_is_read_from_cookie():
    request = Request({"type": "http", "session": {"user_id": "7"}})
    assert get_current_user_id(request) == 7


def test_subscribe_stores_endpoint(authenticated_client, db_session):
    add_user(db_session)

    response = authenticated_client.post("/api/push/subscribe", json=SUBSCRIPTION)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    db_session.expire_all()
    [sub] = list_endpoints(db_session, 1)
    assert sub.endpoint == SUBSCRIPTION["endpoint"]
    assert sub.p256dh == "BNc..."


def test_subscribe_validates_body(authenticated_client):
    response = authenticated_client.post("/api/push/subscribe", json={"endpoint": "x"})
    assert response.status_code == 422


def test_unsubscribe(authenticated_client, db_session):
    add_user(db_session)
    add_endpoint(db_session, endpoint=SUBSCRIPTION["endpoint"])

    response = authenticated_client.request(
        "DELETE", "/api/push/unsubscribe", json={"endpoint": SUBSCRIPTION["endpoint"]},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "deleted": 1}
    db_session.expire_all()
    assert list_endpoints(db_session, 1) == []


def test_test_push_sends(authenticated_client, db_session, fake_gateway):
    add_user(db_session)
    add_endpoint(db_session)

    response = authenticated_client.post("/api/push/test")

    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 1, "failed": 0}
    assert fake_gateway.sent[0].payload["type"] == "test"


def test_test_push_without_endpoints(authenticated_client, db_session, fake_gateway):
    add_user(db_session)

    response = authenticated_client.post("/api/push/test")

    assert response.status_code == 400
    assert fake_gateway.sent == []


def test_test_push_unknown_user(authenticated_client, fake_gateway):
    response = authenticated_client.post("/api/push/test")
    assert response.status_code == 404


def test_ready_misconfigured_database_url(client):
    with patch("app.main.check_db_connection", side_effect=psycopg.ProgrammingError("invalid dsn")):
        response = client.get("/ready")
    assert response.status_code == 503
