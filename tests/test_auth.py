"""Tests for registration, login and token handling."""
from __future__ import annotations

from salonbook.auth import decode_token
from salonbook.extensions import db
from salonbook.models import AuthAccount, User

from conftest import PASSWORD


def _register(client, **overrides):
    payload = {
        "email": "alice@example.com",
        "password": "Secret123",
        "first_name": "Alice",
        "last_name": "Anders",
        "role": "user",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_then_login_returns_token_with_role(app, client) -> None:
    response = _register(client, role="owner")

    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert body["data"]["user"]["role"] == "owner"
    assert body["data"]["token"]

    response = client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "Secret123"}
    )

    assert response.status_code == 200
    token = response.get_json()["data"]["token"]
    with app.app_context():
        claims = decode_token(token)
        user = User.query.filter_by(email="alice@example.com").one()
        assert claims["role"] == "owner"
        assert claims["sub"] == user.id
        assert db.session.get(AuthAccount, user.id).last_login_at is not None


def test_register_normalizes_email_and_accepts_camel_case(app, client) -> None:
    response = client.post(
        "/api/auth/register",
        json={"email": " Bob@Example.COM ", "password": "Secret123", "firstName": "Bob", "lastName": "B"},
    )

    assert response.status_code == 201
    assert response.get_json()["data"]["user"]["email"] == "bob@example.com"
    assert response.get_json()["data"]["user"]["role"] == "user"


def test_register_duplicate_email_does_not_insert(app, client) -> None:
    assert _register(client).status_code == 201

    response = _register(client, email="ALICE@example.com", first_name="Other")

    assert response.status_code == 409
    assert response.get_json()["error"] == "duplicate_account"
    with app.app_context():
        assert User.query.count() == 1


def test_register_cannot_self_assign_admin(app, client) -> None:
    response = _register(client, role="admin")

    assert response.status_code == 403
    with app.app_context():
        assert User.query.count() == 0


def test_register_validation_errors_are_keyed_by_field(client) -> None:
    response = _register(client, email="not-an-email", password="123", first_name="")

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "validation_error"
    assert set(body["errors"]) == {"email", "password", "first_name"}


def test_login_wrong_password(client, factory) -> None:
    factory.user(email="carol@example.com")

    response = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.get_json()["error"] == "invalid_credentials"


def test_login_unknown_email(client) -> None:
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})

    assert response.status_code == 401


def test_login_missing_fields(client) -> None:
    response = client.post("/api/auth/login", json={"email": "carol@example.com"})

    assert response.status_code == 400


def test_login_disabled_account(client, factory) -> None:
    factory.user(email="dave@example.com", is_active=False)

    response = client.post("/api/auth/login", json={"email": "dave@example.com", "password": PASSWORD})

    assert response.status_code == 401
    assert response.get_json()["message"] == "Account disabled"


def test_protected_route_requires_token(client) -> None:
    response = client.get("/api/user/profile")

    assert response.status_code == 401
    assert response.get_json()["error"] == "unauthorized"


def test_tampered_token_is_rejected(client, factory) -> None:
    headers = factory.headers(factory.user())
    headers["Authorization"] += "x"

    response = client.get("/api/user/profile", headers=headers)

    assert response.status_code == 401


def test_expired_token_is_rejected(app, client, factory) -> None:
    headers = factory.headers(factory.user())
    app.config["TOKEN_MAX_AGE"] = -1

    response = client.get("/api/user/profile", headers=headers)

    assert response.status_code == 401
