"""
Identity store helpers shared by auth, students, admins and groups
"""

from datetime import datetime
from typing import Dict, Iterable, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.common.consistency import session_kwargs
from app.common.errors import ConflictError, NotFoundError
from app.common.serializers import id_str, serialize_mongo
from app.users.user_models import Role, level_for_xp

# ==================== UNIQUENESS ====================

async def ensure_unique_identity(
    db: AsyncIOMotorDatabase,
    username: Optional[str] = None,
    email: Optional[str] = None,
    exclude_id: Optional[ObjectId] = None,
):
    """
    Reject a username/email already used by another identity
    The unique indexes are the final guard; this gives the friendly message
    """
    for field, value, message in (
        ("username", username, "Username already exists"),
        ("email", email, "Email already exists"),
    ):
        if value is None:
            continue
        query = {field: value}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await db.users.find_one(query, {"_id": 1}):
            raise ConflictError(message)

# ==================== GROUPS ====================

async def get_active_group(db: AsyncIOMotorDatabase, group_id: ObjectId, **kwargs) -> dict:
    group = await db.groups.find_one({"_id": group_id, "isActive": True}, **kwargs)
    if not group:
        raise NotFoundError("Group not found")
    return group


async def count_group_students(db: AsyncIOMotorDatabase, group_id: ObjectId) -> int:
    return await db.users.count_documents({
        "groupId": group_id,
        "role": Role.STUDENT.value,
        "isActive": True,
    })


async def check_group_capacity(db: AsyncIOMotorDatabase, group: dict):
    """Group must have room for one more active student"""
    current = await count_group_students(db, group["_id"])
    if current >= group.get("maxStudents", 30):
        raise ConflictError("Group is full")


async def group_names(db: AsyncIOMotorDatabase, group_ids: Iterable) -> Dict[str, str]:
    """Batch lookup {group id string: name}"""
    ids = list({gid for gid in group_ids if gid is not None})
    if not ids:
        return {}
    groups = await db.groups.find({"_id": {"$in": ids}}, {"name": 1}).to_list(length=None)
    return {str(group["_id"]): group["name"] for group in groups}


async def user_names(db: AsyncIOMotorDatabase, user_ids: Iterable) -> Dict[str, str]:
    """Batch lookup {identity id string: username}"""
    ids = list({uid for uid in user_ids if isinstance(uid, ObjectId)})
    if not ids:
        return {}
    users = await db.users.find({"_id": {"$in": ids}}, {"username": 1}).to_list(length=None)
    return {str(user["_id"]): user["username"] for user in users}

# ==================== SERIALIZATION ====================

def user_summary(user: dict, group_name: Optional[str] = None) -> dict:
    """Identity summary returned by login/register"""
    return {
        "id": id_str(user.get("_id", user.get("id"))),
        "username": user.get("username"),
        "role": user.get("role"),
        "email": user.get("email"),
        "groupId": id_str(user.get("groupId")),
        "groupName": group_name,
        "xp": user.get("xp", 0),
        "level": user.get("level", 1),
    }


async def serialize_users(db: AsyncIOMotorDatabase, users: list) -> list:
    """Serialize identities with their groupName resolved"""
    names = await group_names(db, (user.get("groupId") for user in users))
    results = []
    for user in users:
        data = serialize_mongo(user)
        data["groupName"] = names.get(str(user.get("groupId"))) if user.get("groupId") else None
        results.append(data)
    return results


async def serialize_user(db: AsyncIOMotorDatabase, user: dict) -> dict:
    return (await serialize_users(db, [user]))[0]

# ==================== XP ====================

async def increment_xp(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    amount: int,
    session=None,
) -> Optional[dict]:
    """
    Atomically add `amount` XP and bring level in line

    The level write only applies while xp still equals the value this
    increment produced; a concurrent increment writes its own level.
    """
    kwargs = session_kwargs(session)
    updated = await db.users.find_one_and_update(
        {"_id": user_id},
        {"$inc": {"xp": amount}, "$set": {"updatedAt": datetime.utcnow()}},
        projection={"password": 0},
        return_document=ReturnDocument.AFTER,
        **kwargs,
    )
    if updated is None:
        return None

    level = level_for_xp(updated["xp"])
    await db.users.update_one(
        {"_id": user_id, "xp": updated["xp"]},
        {"$set": {"level": level}},
        **kwargs,
    )
    updated["level"] = level
    return updated
