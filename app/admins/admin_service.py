import logging
from datetime import datetime
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.auth.auth_utils import get_password_hash
from app.auth.permissions import CurrentUser
from app.common.audit import log_audit
from app.common.consistency import ConsistentUpdate, session_kwargs
from app.common.errors import ConflictError, NotFoundError, ValidationError
from app.common.field_policy import Resource, allowed_fields, filter_update
from app.common.serializers import oid, serialize_mongo
from app.admins.admin_schemas import AdminCreate, AdminUpdate, AssignGroupRequest
from app.users.user_models import Role, User
from app.users.user_service import (
    count_group_students,
    ensure_unique_identity,
    get_active_group,
    serialize_user,
    serialize_users,
)

logger = logging.getLogger(__name__)

ADMIN_NOT_FOUND = "Admin not found"


async def _load_admin(db: AsyncIOMotorDatabase, admin_id: str) -> dict:
    admin = await db.users.find_one(
        {"_id": oid(admin_id, ADMIN_NOT_FOUND), "role": Role.ADMIN.value, "isActive": True},
        {"password": 0},
    )
    if not admin:
        raise NotFoundError(ADMIN_NOT_FOUND)
    return admin


async def _reload(db: AsyncIOMotorDatabase, admin: dict) -> dict:
    return await db.users.find_one({"_id": admin["_id"]}, {"password": 0})


def _set_user_group(db: AsyncIOMotorDatabase, user_id, group_id):
    async def apply(session=None):
        await db.users.update_one(
            {"_id": user_id},
            {"$set": {"groupId": group_id, "updatedAt": datetime.utcnow()}},
            **session_kwargs(session),
        )
    return apply


def _set_group_admin(db: AsyncIOMotorDatabase, group_id, admin_id):
    async def apply(session=None):
        await db.groups.update_one(
            {"_id": group_id},
            {"$set": {"adminId": admin_id, "updatedAt": datetime.utcnow()}},
            **session_kwargs(session),
        )
    return apply

# ==================== READ ====================

async def list_admins(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.users.find(
        {"role": Role.ADMIN.value, "isActive": True},
        {"password": 0},
    ).sort("createdAt", -1)
    admins = await cursor.to_list(length=None)
    return await serialize_users(db, admins)


async def get_admin(db: AsyncIOMotorDatabase, admin_id: str) -> dict:
    """
    Admin profile with the administered group and its live student count
    """
    admin = await _load_admin(db, admin_id)

    group_data = None
    if admin.get("groupId"):
        group = await db.groups.find_one({"_id": admin["groupId"], "isActive": True})
        if group:
            group_data = serialize_mongo(group)
            group_data["studentsCount"] = await count_group_students(db, group["_id"])

    data = await serialize_user(db, admin)
    data["groupData"] = group_data
    return data

# ==================== WRITE ====================

async def create_admin(db: AsyncIOMotorDatabase, caller: CurrentUser, data: AdminCreate) -> dict:
    await ensure_unique_identity(db, username=data.username, email=data.email)

    admin = User(
        username=data.username,
        email=data.email,
        password=get_password_hash(data.password),
        role=Role.ADMIN,
    )
    doc = admin.to_document()
    result = await db.users.insert_one(doc)
    doc["_id"] = result.inserted_id

    logger.info(f"Superadmin {caller.user_id} created admin {doc['_id']}")
    return await serialize_user(db, doc)


async def update_admin(db: AsyncIOMotorDatabase, caller: CurrentUser, admin_id: str, data: AdminUpdate) -> dict:
    admin = await _load_admin(db, admin_id)

    fields = allowed_fields(Resource.ADMIN, caller, owner_id=admin["_id"], group_id=admin.get("groupId"))
    updates = {k: v for k, v in filter_update(data.model_dump(exclude_unset=True), fields).items() if v is not None}

    if not updates:
        return await serialize_user(db, admin)

    await ensure_unique_identity(
        db,
        username=updates.get("username"),
        email=updates.get("email"),
        exclude_id=admin["_id"],
    )

    updates["updatedAt"] = datetime.utcnow()
    updated = await db.users.find_one_and_update(
        {"_id": admin["_id"]},
        {"$set": updates},
        projection={"password": 0},
        return_document=ReturnDocument.AFTER,
    )
    return await serialize_user(db, updated)


async def delete_admin(db: AsyncIOMotorDatabase, caller: CurrentUser, admin_id: str):
    """
    Soft delete; refused while the admin still runs an active group
    """
    admin = await _load_admin(db, admin_id)

    if admin.get("groupId"):
        group = await db.groups.find_one({"_id": admin["groupId"], "isActive": True}, {"_id": 1})
        if group:
            raise ValidationError("Cannot delete admin assigned to a group. Remove group assignment first.")

    await db.users.update_one(
        {"_id": admin["_id"]},
        {"$set": {"isActive": False, "updatedAt": datetime.utcnow()}},
    )
    await log_audit(db, caller, "delete_admin", "admin", admin["_id"], {"username": admin["username"]})

# ==================== GROUP LINK ====================

async def assign_group(
    db: AsyncIOMotorDatabase,
    caller: CurrentUser,
    admin_id: str,
    data: AssignGroupRequest,
) -> dict:
    """
    Link admin <-> group on both documents

    Raises:
        404: Unknown admin or group
        400: Group already has another admin, or admin runs another group
    """
    admin = await _load_admin(db, admin_id)
    group = await get_active_group(db, oid(data.groupId))

    if group.get("adminId") and group["adminId"] != admin["_id"]:
        raise ConflictError("Group already has an admin assigned")

    previous_group_id = admin.get("groupId")
    if previous_group_id and previous_group_id != group["_id"]:
        other = await db.groups.find_one({"_id": previous_group_id, "isActive": True}, {"_id": 1})
        if other:
            raise ConflictError("Admin is already assigned to another group")

    update = ConsistentUpdate(db, f"assign admin {admin['_id']} to group {group['_id']}")
    update.add(
        _set_user_group(db, admin["_id"], group["_id"]),
        undo=_set_user_group(db, admin["_id"], previous_group_id),
    )
    update.add(
        _set_group_admin(db, group["_id"], admin["_id"]),
        undo=_set_group_admin(db, group["_id"], group.get("adminId")),
    )
    await update.commit()

    await log_audit(db, caller, "assign_group", "admin", admin["_id"], {"groupId": str(group["_id"])})
    return await serialize_user(db, await _reload(db, admin))


async def remove_group(db: AsyncIOMotorDatabase, caller: CurrentUser, admin_id: str) -> dict:
    admin = await _load_admin(db, admin_id)

    group_id = admin.get("groupId")
    if not group_id:
        raise ValidationError("Admin is not assigned to any group")

    group = await db.groups.find_one({"_id": group_id}, {"adminId": 1})

    update = ConsistentUpdate(db, f"remove admin {admin['_id']} from group {group_id}")
    update.add(
        _set_user_group(db, admin["_id"], None),
        undo=_set_user_group(db, admin["_id"], group_id),
    )
    if group and group.get("adminId") == admin["_id"]:
        update.add(
            _set_group_admin(db, group_id, None),
            undo=_set_group_admin(db, group_id, admin["_id"]),
        )
    await update.commit()

    await log_audit(db, caller, "remove_group", "admin", admin["_id"], {"groupId": str(group_id)})
    return await serialize_user(db, await _reload(db, admin))
