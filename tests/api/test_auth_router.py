import pytest
from fastapi import HTTPException

from backoffice.core.errors import ValidationFailedError
from backoffice.core.security import verify_token
from backoffice.services.auth_service import create_admin


async def test_login_returns_a_token(client, admin):
    response = await client.post(
        "/api/auth/login", json={"email": "Admin@Example.com", "password": "correct-horse"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert verify_token(body["token"])["sub"] == str(admin.id)
    assert body["data"]["admin"]["email"] == "admin@example.com"
    assert "hashed_password" not in body["data"]["admin"]


async def test_login_with_wrong_password(client, admin):
    response = await client.post(
        "/api/auth/login", json={"email": "admin@example.com", "password": "wrong"}
    )
    assert response.status_code == 401
    assert response.json() == {"status": "fail", "message": "Incorrect email or password"}


async def test_login_requires_both_fields(client):
    response = await client.post("/api/auth/login", json={"email": "admin@example.com"})
    assert response.status_code == 400


async def test_inactive_admin_is_locked_out(client, admin, auth_headers, db):
    admin.active = False
    await db.commit()

    response = await client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 401
    assert response.json()["message"] == "The user belonging to this token no longer exists."


async def test_me(client, admin, auth_headers):
    response = await client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["admin"]["id"] == str(admin.id)


async def test_logout(client):
    response = await client.post("/api/auth/logout")
    assert response.json()["status"] == "success"


async def test_update_password(client, auth_headers):
    response = await client.patch(
        "/api/auth/update-password",
        json={"currentPassword": "correct-horse", "newPassword": "battery-staple"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["token"]

    login = await client.post(
        "/api/auth/login", json={"email": "admin@example.com", "password": "battery-staple"}
    )
    assert login.status_code == 200


async def test_update_password_checks_current_password(client, auth_headers):
    response = await client.patch(
        "/api/auth/update-password",
        json={"currentPassword": "nope", "newPassword": "battery-staple"},
        headers=auth_headers,
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Your current password is incorrect"


async def test_create_admin_normalizes_email(db):
    created = await create_admin("  New Admin ", "New@Example.com", "long-enough", db)
    assert created.email == "new@example.com"
    assert created.name == "New Admin"

    with pytest.raises(HTTPException):
        await create_admin("Again", "new@example.com", "long-enough", db)


async def test_create_admin_rejects_unknown_role(db):
    with pytest.raises(ValidationFailedError):
        await create_admin("Viewer", "viewer@example.com", "long-enough", db, role="viewer")
