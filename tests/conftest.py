# tests/conftest.py

import pytest

from activebreak import create_app, db
from activebreak.routes import session_routes
from config import TestConfig


@pytest.fixture
def app():
    """Fresh app on an in-memory SQLite database"""
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
    session_routes._sessions.clear()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email="ana@example.com", password="secret123", role="client", **extra):
    body = {"email": email, "password": password, "role": role, **extra}
    return client.post("/api/auth/register", json=body)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_token(client):
    resp = register(client, full_name="Ana Ruiz", org_name="Acme")
    assert resp.status_code == 201
    return resp.get_json()["token"]


@pytest.fixture
def auth_headers(user_token):
    return bearer(user_token)


@pytest.fixture
def admin_headers(client):
    resp = register(client, email="admin@example.com", role="admin", full_name="Root")
    assert resp.status_code == 201
    return bearer(resp.get_json()["token"])
