import logging
from typing import Optional

from bson import ObjectId
from fastapi import Depends, Header, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from app import config
from app.auth.auth_utils import TokenExpired, TokenInvalid, decode_access_token
from app.common.errors import AuthenticationError, AuthorizationError, InternalError
from app.database import get_db
from app.users.user_models import Role

logger = logging.getLogger(__name__)


class CurrentUser:
    """
    Resolved caller identity and scope
    """
    def __init__(self, user_id: str, profile: dict):
        self.user_id = str(user_id)
        self.username = profile.get("username")
        self.email = profile.get("email")
        self.role = Role(profile.get("role", Role.STUDENT.value))
        self.group_id: Optional[str] = str(profile["groupId"]) if profile.get("groupId") else None
        self.xp = profile.get("xp", 0)
        self.level = profile.get("level", 1)
        self.profile = profile

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    @property
    def object_id(self):
        """ObjectId for store-backed identities, the raw id for the bootstrap superadmin"""
        return ObjectId(self.user_id) if ObjectId.is_valid(self.user_id) else self.user_id


def superadmin_profile() -> dict:
    """Identity of the configured bootstrap superadmin"""
    return {
        "username": config.SUPERADMIN_USERNAME,
        "email": config.SUPERADMIN_EMAIL,
        "role": Role.SUPERADMIN.value,
        "groupId": None,
        "xp": 0,
        "level": 1,
        "isActive": True,
    }


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> CurrentUser:
    """
    Dependency: resolves the bearer token to an active identity

    Raises:
        401: Missing, invalid or expired token; unknown or inactive identity
        500: Identity lookup failed
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Access denied. No token provided.")

    token = authorization[len("Bearer "):].strip()

    try:
        payload = decode_access_token(token)
    except TokenExpired:
        raise AuthenticationError("Token expired.")
    except TokenInvalid:
        logger.warning("Rejected request with an invalid token")
        raise AuthenticationError("Invalid token.")

    user_id = payload["sub"]

    try:
        if user_id == config.SUPERADMIN_ID:
            return CurrentUser(user_id, superadmin_profile())

        profile = None
        if ObjectId.is_valid(user_id):
            profile = await db.users.find_one({"_id": ObjectId(user_id)}, {"password": 0})
    except HTTPException:
        raise
    except Exception:
        logger.exception("Identity lookup failed during authentication")
        raise InternalError("Server error during authentication.")

    if not profile or not profile.get("isActive", False):
        raise AuthenticationError("Invalid token or user not active.")

    return CurrentUser(user_id, profile)


def authorize(*roles: Role):
    """
    Dependency factory: caller's role must be one of `roles`
    """
    allowed = [Role(role) for role in roles]

    async def role_checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise AuthorizationError(
                f"Access denied. Required role: {' or '.join(role.value for role in allowed)}"
            )
        return user

    return role_checker


async def is_group_admin(
    group_id: str,
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Dependency: caller administers the group in the path (superadmin always passes)
    """
    if user.is_superadmin:
        return user

    if user.role != Role.ADMIN:
        raise AuthorizationError("Admin access required.")

    if user.group_id != group_id:
        logger.info(f"Admin {user.user_id} denied access to group {group_id}")
        raise AuthorizationError("Access denied to this group.")

    return user
