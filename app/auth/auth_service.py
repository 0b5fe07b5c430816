import logging
import secrets

from motor.motor_asyncio import AsyncIOMotorDatabase

from app import config
from app.auth.auth_schemas import RegisterRequest
from app.auth.auth_utils import create_access_token, get_password_hash, verify_password
from app.auth.permissions import superadmin_profile
from app.common.errors import AuthenticationError, ValidationError
from app.common.serializers import oid
from app.users.user_models import Role, User
from app.users.user_service import (
    check_group_capacity,
    ensure_unique_identity,
    get_active_group,
    group_names,
    user_summary,
)

logger = logging.getLogger(__name__)


def _matches(supplied: str, expected: str) -> bool:
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))

# ==================== LOGIN ====================

async def authenticate(db: AsyncIOMotorDatabase, username: str, password: str, role: Role) -> dict:
    """
    Verify credentials for the requested role and issue a session token

    Unknown username, wrong role and wrong password all answer the same
    "Invalid credentials" so callers cannot probe for accounts.
    """
    role = Role(role)

    if role == Role.SUPERADMIN:
        username_ok = _matches(username, config.SUPERADMIN_USERNAME)
        password_ok = _matches(password, config.SUPERADMIN_PASSWORD)
        if not (username_ok and password_ok):
            logger.warning("Rejected superadmin login attempt")
            raise AuthenticationError("Invalid superadmin credentials")

        profile = {"_id": config.SUPERADMIN_ID, **superadmin_profile()}
        return {
            "token": create_access_token(config.SUPERADMIN_ID),
            "user": user_summary(profile),
        }

    user = await db.users.find_one({
        "username": username,
        "role": role.value,
        "isActive": True,
    })

    if not user or not verify_password(password, user.get("password")):
        logger.warning(f"Rejected login for username={username!r} role={role.value}")
        raise AuthenticationError("Invalid credentials")

    names = await group_names(db, [user.get("groupId")])
    group_name = names.get(str(user["groupId"])) if user.get("groupId") else None

    logger.info(f"User {user['_id']} logged in as {role.value}")
    return {
        "token": create_access_token(str(user["_id"])),
        "user": user_summary(user, group_name),
    }

# ==================== REGISTRATION ====================

async def register(db: AsyncIOMotorDatabase, data: RegisterRequest) -> dict:
    role = Role(data.role)

    if role == Role.ADMIN and data.groupId:
        raise ValidationError("Admins are linked to a group by a superadmin")

    await ensure_unique_identity(db, username=data.username, email=data.email)

    group = None
    if data.groupId:
        group = await get_active_group(db, oid(data.groupId))
        await check_group_capacity(db, group)

    user = User(
        username=data.username,
        email=data.email,
        password=get_password_hash(data.password),
        role=role,
        groupId=group["_id"] if group else None,
    )
    doc = user.to_document()
    result = await db.users.insert_one(doc)
    doc["_id"] = result.inserted_id

    logger.info(f"Registered {role.value} {doc['_id']}")
    return {
        "token": create_access_token(str(doc["_id"])),
        "user": user_summary(doc, group["name"] if group else None),
    }
