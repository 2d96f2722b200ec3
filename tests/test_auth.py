from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from config.environment import settings
from dependencies.require_admin import require_admin
from errors import Forbidden, Unauthorized
from services.auth import decode_token

ADMIN_EMAIL = "admin@alahas.com"
ADMIN_PASSWORD = "secret123"


def login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_login_returns_token(client, admin):
    response = login(client)
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["user"]["email"] == ADMIN_EMAIL
    assert body["user"]["role"] == "admin"
    assert body["user"]["last_login"] is not None
    assert decode_token(body["token"])["userId"] == admin.id


def test_login_is_case_insensitive_on_email(client, admin):
    assert login(client, email=ADMIN_EMAIL.upper()).status_code == 200


def test_wrong_password(client, admin):
    response = login(client, password="wrong-password")
    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Invalid credentials"}


def test_me(client, admin_headers):
    response = client.get("/api/auth/me", headers=admin_headers)
    assert response.json()["data"]["email"] == ADMIN_EMAIL


def test_expired_token(client, admin):
    token = jwt.encode(
        {"userId": admin.id, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.jwt_secret, algorithm="HS256",
    )
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"] == "Token has expired"


def test_token_signed_with_other_secret():
    token = jwt.encode({"userId": 1}, "another-secret", algorithm="HS256")
    with pytest.raises(Unauthorized):
        decode_token(token)


def test_inactive_user_is_rejected(client, db, admin, admin_headers):
    admin.is_active = False
    db.commit()
    assert client.get("/api/auth/me", headers=admin_headers).status_code == 401


def test_non_admin_is_forbidden():
    with pytest.raises(Forbidden):
        require_admin(current_user=SimpleNamespace(role="customer"))


def test_register_requires_admin(client, admin_headers):
    payload = {"email": "otra@alahas.com", "password": "secret456", "full_name": "Otra Admin"}
    assert client.post("/api/auth/register", json=payload).status_code == 401

    response = client.post("/api/auth/register", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["user"]["email"] == "otra@alahas.com"

    assert client.post("/api/auth/register", json=payload, headers=admin_headers).status_code == 409


def test_change_password(client, admin_headers):
    response = client.post("/api/auth/change-password",
                           json={"oldPassword": "nope-nope", "newPassword": "brand-new"},
                           headers=admin_headers)
    assert response.status_code == 400

    response = client.post("/api/auth/change-password",
                           json={"oldPassword": ADMIN_PASSWORD, "newPassword": "brand-new"},
                           headers=admin_headers)
    assert response.status_code == 200
    assert login(client, password="brand-new").status_code == 200
