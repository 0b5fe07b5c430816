import logging
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.auth.permissions import CurrentUser
from app.common.audit import log_audit
from app.common.consistency import ConsistentUpdate, session_kwargs
from app.common.errors import ConflictError, NotFoundError, ValidationError
from app.common.field_policy import Resource, allowed_fields, filter_update
from app.common.serializers import oid, serialize_many, serialize_mongo
from app.groups.group_models import Group
from app.groups.group_schemas import GroupCreate, GroupUpdate
from app.users.user_models import Role

logger = logging.getLogger(__name__)

GROUP_NOT_FOUND = "Group not found"


async def _load_group(db: AsyncIOMotorDatabase, group_id: str) -> dict:
    group = await db.groups.find_one({"_id": oid(group_id, GROUP_NOT_FOUND), "isActive": True})
    if not group:
        raise NotFoundError(GROUP_NOT_FOUND)
    return group


async def _ensure_unique_name(db: AsyncIOMotorDatabase, name: str, exclude_id: Optional[ObjectId] = None):
    query = {"name": name}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    if await db.groups.find_one(query, {"_id": 1}):
        raise ConflictError("Group name already exists")


async def student_counts(db: AsyncIOMotorDatabase, group_ids: List[ObjectId]) -> Dict[ObjectId, int]:
    """Live count of active students per group"""
    if not group_ids:
        return {}
    pipeline = [
        {"$match": {"role": Role.STUDENT.value, "isActive": True, "groupId": {"$in": group_ids}}},
        {"$group": {"_id": "$groupId", "count": {"$sum": 1}}},
    ]
    rows = await db.users.aggregate(pipeline).to_list(length=None)
    return {row["_id"]: row["count"] for row in rows}


async def serialize_groups(db: AsyncIOMotorDatabase, groups: List[dict]) -> List[dict]:
    """Groups with `admin {id, username, email}` and `studentCount`"""
    counts = await student_counts(db, [group["_id"] for group in groups])

    admin_ids = list({group["adminId"] for group in groups if group.get("adminId")})
    admins = {}
    if admin_ids:
        cursor = db.users.find({"_id": {"$in": admin_ids}}, {"username": 1, "email": 1})
        admins = {admin["_id"]: admin for admin in await cursor.to_list(length=None)}

    results = []
    for group in groups:
        data = serialize_mongo(group)
        admin = admins.get(group.get("adminId"))
        data["admin"] = {
            "id": str(admin["_id"]),
            "username": admin["username"],
            "email": admin.get("email"),
        } if admin else None
        data["studentCount"] = counts.get(group["_id"], 0)
        results.append(data)
    return results

# ==================== READ ====================

async def list_groups(db: AsyncIOMotorDatabase) -> List[dict]:
    groups = await db.groups.find({"isActive": True}).sort("createdAt", -1).to_list(length=None)
    return await serialize_groups(db, groups)


async def get_group(db: AsyncIOMotorDatabase, group_id: str) -> dict:
    """
    Group with its active students, xp desc
    """
    group = await _load_group(db, group_id)

    students = await db.users.find(
        {"groupId": group["_id"], "role": Role.STUDENT.value, "isActive": True},
        {"password": 0},
    ).sort("xp", -1).to_list(length=None)

    data = (await serialize_groups(db, [group]))[0]
    data["students"] = serialize_many(students)
    return data

# ==================== WRITE ====================

async def create_group(db: AsyncIOMotorDatabase, caller: CurrentUser, data: GroupCreate) -> dict:
    """
    Create a group, optionally linking an admin on both sides

    Raises:
        400: Invalid admin, admin already runs an active group, or duplicate name
    """
    admin = None
    if data.adminId:
        admin = await db.users.find_one({
            "_id": oid(data.adminId),
            "role": Role.ADMIN.value,
            "isActive": True,
        })
        if not admin:
            raise ValidationError("Invalid admin ID")

        existing = await db.groups.find_one({"adminId": admin["_id"], "isActive": True}, {"_id": 1})
        if existing:
            raise ConflictError("Admin is already assigned to another group")

    await _ensure_unique_name(db, data.name)

    group = Group(
        name=data.name,
        description=data.description,
        adminId=admin["_id"] if admin else None,
        maxStudents=data.maxStudents,
    )
    doc = group.to_document()

    async def insert_group(session=None):
        await db.groups.insert_one(doc, **session_kwargs(session))

    async def remove_group():
        await db.groups.delete_one({"_id": doc["_id"]})

    update = ConsistentUpdate(db, f"create group {data.name!r}")
    update.add(insert_group, undo=remove_group)

    if admin:
        previous_group_id = admin.get("groupId")

        async def link_admin(session=None):
            await db.users.update_one(
                {"_id": admin["_id"]},
                {"$set": {"groupId": doc["_id"], "updatedAt": datetime.utcnow()}},
                **session_kwargs(session),
            )

        async def unlink_admin():
            await db.users.update_one({"_id": admin["_id"]}, {"$set": {"groupId": previous_group_id}})

        update.add(link_admin, undo=unlink_admin)

    await update.commit()

    logger.info(f"Superadmin {caller.user_id} created group {doc['_id']}")
    return (await serialize_groups(db, [doc]))[0]


async def update_group(db: AsyncIOMotorDatabase, caller: CurrentUser, group_id: str, data: GroupUpdate) -> dict:
    group = await _load_group(db, group_id)

    fields = allowed_fields(Resource.GROUP, caller, group_id=group["_id"])
    updates = filter_update(data.model_dump(exclude_unset=True), fields)
    for key in ("name", "maxStudents"):
        if key in updates and updates[key] is None:
            updates.pop(key)

    if not updates:
        return (await serialize_groups(db, [group]))[0]

    if "name" in updates:
        await _ensure_unique_name(db, updates["name"], exclude_id=group["_id"])

    updates["updatedAt"] = datetime.utcnow()
    updated = await db.groups.find_one_and_update(
        {"_id": group["_id"]},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return (await serialize_groups(db, [updated]))[0]


async def delete_group(db: AsyncIOMotorDatabase, caller: CurrentUser, group_id: str):
    """
    Soft delete and release every member

    Members (students and the admin) lose their groupId and the group loses
    its adminId in one consistent update.
    """
    group = await _load_group(db, group_id)

    members = await db.users.find({"groupId": group["_id"]}, {"_id": 1}).to_list(length=None)
    member_ids = [member["_id"] for member in members]
    previous_admin_id = group.get("adminId")

    async def deactivate(session=None):
        await db.groups.update_one(
            {"_id": group["_id"]},
            {"$set": {"isActive": False, "adminId": None, "updatedAt": datetime.utcnow()}},
            **session_kwargs(session),
        )

    async def reactivate():
        await db.groups.update_one(
            {"_id": group["_id"]},
            {"$set": {"isActive": True, "adminId": previous_admin_id}},
        )

    async def release_members(session=None):
        if member_ids:
            await db.users.update_many(
                {"_id": {"$in": member_ids}},
                {"$set": {"groupId": None, "updatedAt": datetime.utcnow()}},
                **session_kwargs(session),
            )

    async def restore_members():
        if member_ids:
            await db.users.update_many({"_id": {"$in": member_ids}}, {"$set": {"groupId": group["_id"]}})

    update = ConsistentUpdate(db, f"delete group {group['_id']}")
    update.add(deactivate, undo=reactivate)
    update.add(release_members, undo=restore_members)
    await update.commit()

    await log_audit(db, caller, "delete_group", "group", group["_id"], {
        "name": group["name"],
        "releasedMembers": len(member_ids),
    })
