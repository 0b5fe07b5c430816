"""
Login, registration and token handling
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.auth.auth_utils import (
    TokenExpired,
    TokenInvalid,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from app.database import get_db
from app.main import app


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = get_password_hash("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong-pass", hashed)

    def test_verify_rejects_non_bcrypt_value(self):
        assert not verify_password("secret123", "plain-text")
        assert not verify_password("secret123", None)


class TestTokens:
    def test_round_trip_subject(self):
        token = create_access_token("abc123")
        assert decode_access_token(token)["sub"] == "abc123"

    def test_expired(self):
        token = create_access_token("abc123", expires_delta=timedelta(seconds=-30))
        with pytest.raises(TokenExpired):
            decode_access_token(token)

    def test_garbage(self):
        with pytest.raises(TokenInvalid):
            decode_access_token("not-a-token")


class TestLogin:
    async def test_student_login(self, client, make_group, make_user):
        group = await make_group(name="Alpha")
        user = await make_user(username="alice", group=group, xp=120)

        response = await client.post("/api/auth/login", json={
            "username": "alice",
            "password": "secret123",
            "role": "student",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert decode_access_token(body["token"])["sub"] == str(user["_id"])
        assert body["user"] == {
            "id": str(user["_id"]),
            "username": "alice",
            "role": "student",
            "email": user["email"],
            "groupId": str(group["_id"]),
            "groupName": "Alpha",
            "xp": 120,
            "level": 2,
        }

    async def test_wrong_password(self, client, make_user):
        await make_user(username="alice")
        response = await client.post("/api/auth/login", json={
            "username": "alice",
            "password": "not-the-password",
            "role": "student",
        })
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid credentials"}

    async def test_wrong_role_is_indistinguishable(self, client, make_user):
        await make_user(username="alice")
        response = await client.post("/api/auth/login", json={
            "username": "alice",
            "password": "secret123",
            "role": "admin",
        })
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid credentials"}

    async def test_inactive_user_cannot_login(self, client, make_user):
        await make_user(username="alice", is_active=False)
        response = await client.post("/api/auth/login", json={
            "username": "alice",
            "password": "secret123",
            "role": "student",
        })
        assert response.status_code == 401

    async def test_superadmin_login_does_not_touch_store(self, client):
        store = MagicMock()

        async def override_get_db():
            return store

        app.dependency_overrides[get_db] = override_get_db

        response = await client.post("/api/auth/login", json={
            "username": "superadmin",
            "password": "demo123",
            "role": "superadmin",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == "superadmin-demo"
        assert body["user"]["role"] == "superadmin"
        assert decode_access_token(body["token"])["sub"] == "superadmin-demo"
        assert store.mock_calls == []

    async def test_superadmin_bad_password(self, client):
        response = await client.post("/api/auth/login", json={
            "username": "superadmin",
            "password": "guess123",
            "role": "superadmin",
        })
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid superadmin credentials"}

    async def test_validation_envelope(self, client):
        response = await client.post("/api/auth/login", json={
            "username": "alice",
            "password": "123",
            "role": "teacher",
        })
        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert fields == {"password", "role"}


class TestRegister:
    async def test_register_student_into_group(self, client, db, make_group):
        group = await make_group(name="Alpha")

        response = await client.post("/api/auth/register", json={
            "username": "  newbie  ",
            "email": "NewBie@Example.com",
            "password": "secret123",
            "role": "student",
            "groupId": str(group["_id"]),
        })

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["username"] == "newbie"
        assert user["email"] == "newbie@example.com"
        assert user["groupName"] == "Alpha"
        assert user["xp"] == 0
        assert user["level"] == 1

        stored = await db.users.find_one({"username": "newbie"})
        assert stored["password"] != "secret123"
        assert verify_password("secret123", stored["password"])

    async def test_duplicate_username(self, client, make_user):
        await make_user(username="alice")
        response = await client.post("/api/auth/register", json={
            "username": "alice",
            "email": "fresh@example.com",
            "password": "secret123",
        })
        assert response.status_code == 400
        assert response.json() == {"message": "Username already exists"}

    async def test_duplicate_email(self, client, make_user):
        await make_user(email="taken@example.com")
        response = await client.post("/api/auth/register", json={
            "username": "someone",
            "email": "taken@example.com",
            "password": "secret123",
        })
        assert response.status_code == 400
        assert response.json() == {"message": "Email already exists"}

    async def test_cannot_register_superadmin(self, client):
        response = await client.post("/api/auth/register", json={
            "username": "root",
            "email": "root@example.com",
            "password": "secret123",
            "role": "superadmin",
        })
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "role"

    async def test_admin_cannot_pick_group(self, client, make_group):
        group = await make_group()
        response = await client.post("/api/auth/register", json={
            "username": "bossy",
            "email": "bossy@example.com",
            "password": "secret123",
            "role": "admin",
            "groupId": str(group["_id"]),
        })
        assert response.status_code == 400

    async def test_full_group(self, client, make_group, make_user):
        group = await make_group(max_students=1)
        await make_user(group=group)

        response = await client.post("/api/auth/register", json={
            "username": "latecomer",
            "email": "late@example.com",
            "password": "secret123",
            "groupId": str(group["_id"]),
        })
        assert response.status_code == 400
        assert response.json() == {"message": "Group is full"}

    async def test_short_username(self, client):
        response = await client.post("/api/auth/register", json={
            "username": "ab",
            "email": "ab@example.com",
            "password": "secret123",
        })
        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "username", "message": "Username must be 3-50 characters"}
        ]
