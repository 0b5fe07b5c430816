import logging
from datetime import datetime
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.auth.auth_utils import get_password_hash
from app.auth.permissions import CurrentUser
from app.common.audit import log_audit
from app.common.errors import AuthorizationError, NotFoundError, ValidationError
from app.common.field_policy import Resource, allowed_fields, filter_update, in_scope, scope_filter
from app.common.serializers import oid, serialize_many
from app.students.student_schemas import GiveXPRequest, StudentCreate, StudentUpdate
from app.users.user_models import Role, User, level_for_xp
from app.users.user_service import (
    check_group_capacity,
    ensure_unique_identity,
    get_active_group,
    increment_xp,
    serialize_user,
    serialize_users,
)

logger = logging.getLogger(__name__)

STUDENT_NOT_FOUND = "Student not found"
STUDENT_DENIED = "Access denied to this student"


async def _load_student(db: AsyncIOMotorDatabase, student_id: str) -> dict:
    student = await db.users.find_one(
        {"_id": oid(student_id, STUDENT_NOT_FOUND), "role": Role.STUDENT.value, "isActive": True},
        {"password": 0},
    )
    if not student:
        raise NotFoundError(STUDENT_NOT_FOUND)
    return student


def _require_write_scope(caller: CurrentUser, student: dict):
    if not in_scope(Resource.STUDENT, caller, student):
        logger.info(f"{caller.role.value} {caller.user_id} denied write on student {student['_id']}")
        raise AuthorizationError(STUDENT_DENIED)

# ==================== READ ====================

async def list_students(db: AsyncIOMotorDatabase, caller: CurrentUser) -> List[dict]:
    """
    Active students visible to the caller, best first
    """
    query = {"role": Role.STUDENT.value, "isActive": True}
    query.update(scope_filter(Resource.STUDENT, caller))

    cursor = db.users.find(query, {"password": 0}).sort([("xp", -1), ("createdAt", -1)])
    students = await cursor.to_list(length=None)
    return await serialize_users(db, students)


async def get_student(db: AsyncIOMotorDatabase, caller: CurrentUser, student_id: str) -> dict:
    """
    Student profile with submitted projects
    Out-of-scope students look exactly like missing ones
    """
    student = await _load_student(db, student_id)

    if not in_scope(Resource.STUDENT, caller, student):
        logger.info(f"{caller.role.value} {caller.user_id} denied read on student {student['_id']}")
        raise NotFoundError(STUDENT_NOT_FOUND)

    projects = await db.projects.find({"studentId": student["_id"]}).sort("createdAt", -1).to_list(length=None)

    data = await serialize_user(db, student)
    data["projects"] = serialize_many(projects)
    return data

# ==================== WRITE ====================

async def create_student(db: AsyncIOMotorDatabase, caller: CurrentUser, data: StudentCreate) -> dict:
    if caller.role == Role.ADMIN:
        if not caller.group_id:
            raise ValidationError("Admin must be assigned to a group to create students")
        group_id = caller.group_id
    else:
        group_id = data.groupId

    await ensure_unique_identity(db, username=data.username, email=data.email)

    group = None
    if group_id:
        group = await get_active_group(db, oid(group_id))
        await check_group_capacity(db, group)

    student = User(
        username=data.username,
        email=data.email,
        password=get_password_hash(data.password),
        role=Role.STUDENT,
        groupId=group["_id"] if group else None,
    )
    doc = student.to_document()
    result = await db.users.insert_one(doc)
    doc["_id"] = result.inserted_id

    logger.info(f"{caller.role.value} {caller.user_id} created student {doc['_id']}")
    return await serialize_user(db, doc)


async def update_student(
    db: AsyncIOMotorDatabase,
    caller: CurrentUser,
    student_id: str,
    data: StudentUpdate,
) -> dict:
    """
    Apply the caller's permitted subset of the update

    student (self)    -> username, email
    admin (own group) -> username, email, xp
    superadmin        -> username, email, groupId, xp
    """
    student = await _load_student(db, student_id)

    fields = allowed_fields(
        Resource.STUDENT,
        caller,
        owner_id=student["_id"],
        group_id=student.get("groupId"),
        denied_message=STUDENT_DENIED,
    )
    updates = filter_update(data.model_dump(exclude_unset=True), fields)

    for key in ("username", "email", "xp"):
        if key in updates and updates[key] is None:
            updates.pop(key)

    await ensure_unique_identity(
        db,
        username=updates.get("username"),
        email=updates.get("email"),
        exclude_id=student["_id"],
    )

    audit_metadata = {}

    if "groupId" in updates:
        new_group_id = updates["groupId"]
        if new_group_id is None:
            updates["groupId"] = None
        else:
            group = await get_active_group(db, oid(new_group_id))
            if group["_id"] != student.get("groupId"):
                await check_group_capacity(db, group)
            updates["groupId"] = group["_id"]
        audit_metadata["fromGroupId"] = str(student.get("groupId")) if student.get("groupId") else None
        audit_metadata["toGroupId"] = str(updates["groupId"]) if updates["groupId"] else None

    if "xp" in updates:
        updates["level"] = level_for_xp(updates["xp"])
        audit_metadata["fromXp"] = student.get("xp", 0)
        audit_metadata["toXp"] = updates["xp"]

    if not updates:
        return await serialize_user(db, student)

    updates["updatedAt"] = datetime.utcnow()
    updated = await db.users.find_one_and_update(
        {"_id": student["_id"]},
        {"$set": updates},
        projection={"password": 0},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFoundError(STUDENT_NOT_FOUND)

    if audit_metadata:
        await log_audit(db, caller, "update_student", "student", student["_id"], audit_metadata)

    return await serialize_user(db, updated)


async def delete_student(db: AsyncIOMotorDatabase, caller: CurrentUser, student_id: str):
    """
    Soft delete: the document stays with isActive=false
    """
    student = await _load_student(db, student_id)
    _require_write_scope(caller, student)

    await db.users.update_one(
        {"_id": student["_id"]},
        {"$set": {"isActive": False, "updatedAt": datetime.utcnow()}},
    )
    await log_audit(db, caller, "delete_student", "student", student["_id"], {"username": student["username"]})


async def give_xp(
    db: AsyncIOMotorDatabase,
    caller: CurrentUser,
    student_id: str,
    data: GiveXPRequest,
) -> dict:
    student = await _load_student(db, student_id)
    _require_write_scope(caller, student)

    updated = await increment_xp(db, student["_id"], data.amount)
    if updated is None:
        raise NotFoundError(STUDENT_NOT_FOUND)

    await log_audit(db, caller, "give_xp", "student", student["_id"], {
        "amount": data.amount,
        "reason": data.reason,
        "xp": updated["xp"],
    })

    return {
        "id": str(updated["_id"]),
        "username": updated["username"],
        "xp": updated["xp"],
        "level": updated["level"],
        "xpAdded": data.amount,
        "reason": data.reason,
    }
