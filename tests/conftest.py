"""
XP Mentorship API - Test Configuration and Fixtures
"""
import os

# Set testing environment before the app reads its config
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MONGO_USE_TRANSACTIONS"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app import config
from app.auth.auth_utils import create_access_token, get_password_hash
from app.database import get_db
from app.groups.group_models import Group
from app.main import app
from app.users.user_models import Role, User

fake = Faker()

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def db():
    """Fresh in-memory database per test"""
    return AsyncMongoMockClient()["xp_mentorship_test"]


@pytest.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database dependency pointed at the mock"""
    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Insert an identity and return its stored document"""
    async def _make(
        role: Role = Role.STUDENT,
        group: dict = None,
        xp: int = 0,
        username: str = None,
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> dict:
        user = User(
            username=username or fake.unique.user_name(),
            email=email or fake.unique.email().lower(),
            password=get_password_hash(password),
            role=role,
            groupId=group["_id"] if group else None,
            xp=xp,
            isActive=is_active,
        )
        doc = user.to_document()
        result = await db.users.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    return _make


@pytest.fixture
def make_group(db):
    """Insert a group, linking `admin` on both sides when given"""
    async def _make(name: str = None, admin: dict = None, max_students: int = 30) -> dict:
        group = Group(
            name=name or f"{fake.unique.word()}-cohort",
            adminId=admin["_id"] if admin else None,
            maxStudents=max_students,
        )
        doc = group.to_document()
        await db.groups.insert_one(doc)
        if admin:
            await db.users.update_one({"_id": admin["_id"]}, {"$set": {"groupId": doc["_id"]}})
            admin["groupId"] = doc["_id"]
        return doc

    return _make


def auth_headers(user: dict) -> dict:
    """Bearer header for a stored identity"""
    return {"Authorization": f"Bearer {create_access_token(str(user['_id']))}"}


@pytest.fixture
def superadmin_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token(config.SUPERADMIN_ID)}"}


@pytest.fixture
def headers():
    return auth_headers
