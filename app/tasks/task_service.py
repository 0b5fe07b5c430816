import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.auth.permissions import CurrentUser
from app.common.audit import log_audit
from app.common.errors import NotFoundError, ValidationError
from app.common.field_policy import Resource, allowed_fields, filter_update
from app.common.serializers import oid, serialize_mongo
from app.tasks.task_models import AdminTask, TaskStatus
from app.tasks.task_schemas import TaskCreate, TaskUpdate
from app.users.user_service import get_active_group, user_names

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"

NON_NULLABLE = ("title", "description", "dueDate", "priority", "status")


async def _load_group(db: AsyncIOMotorDatabase, group_id: str) -> dict:
    return await get_active_group(db, oid(group_id, "Group not found"))


async def _load_task(db: AsyncIOMotorDatabase, group: dict, task_id: str) -> dict:
    # tasks of other groups are reported as missing
    task = await db.tasks.find_one({"_id": oid(task_id, TASK_NOT_FOUND), "groupId": group["_id"]})
    if not task:
        raise NotFoundError(TASK_NOT_FOUND)
    return task


async def _resolve_assignee(db: AsyncIOMotorDatabase, group: dict, assigned_to: Optional[str]) -> Optional[ObjectId]:
    if assigned_to is None:
        return None
    member = await db.users.find_one(
        {"_id": oid(assigned_to), "groupId": group["_id"], "isActive": True},
        {"_id": 1},
    )
    if not member:
        raise ValidationError("Assignee must be an active member of this group")
    return member["_id"]


async def serialize_tasks(db: AsyncIOMotorDatabase, tasks: List[dict]) -> List[dict]:
    names = await user_names(db, [t.get("assignedTo") for t in tasks] + [t.get("createdBy") for t in tasks])
    results = []
    for task in tasks:
        data = serialize_mongo(task)
        data["assigneeName"] = names.get(str(task.get("assignedTo"))) if task.get("assignedTo") else None
        data["creatorName"] = names.get(str(task.get("createdBy")))
        results.append(data)
    return results

# ==================== READ ====================

async def list_tasks(db: AsyncIOMotorDatabase, group_id: str, status: Optional[TaskStatus] = None) -> List[dict]:
    """Group tasks, earliest due first"""
    group = await _load_group(db, group_id)

    query = {"groupId": group["_id"]}
    if status:
        query["status"] = TaskStatus(status).value

    tasks = await db.tasks.find(query).sort([("dueDate", 1), ("createdAt", -1)]).to_list(length=None)
    return await serialize_tasks(db, tasks)

# ==================== WRITE ====================

async def create_task(db: AsyncIOMotorDatabase, caller: CurrentUser, group_id: str, data: TaskCreate) -> dict:
    group = await _load_group(db, group_id)

    task = AdminTask(
        title=data.title,
        description=data.description,
        groupId=group["_id"],
        createdBy=caller.object_id,
        dueDate=data.dueDate,
        priority=data.priority,
        status=data.status,
        assignedTo=await _resolve_assignee(db, group, data.assignedTo),
        completedAt=datetime.utcnow() if data.status == TaskStatus.COMPLETED.value else None,
        notes=data.notes,
    )
    doc = task.model_dump()
    result = await db.tasks.insert_one(doc)
    doc["_id"] = result.inserted_id

    logger.info(f"{caller.role.value} {caller.user_id} created task {doc['_id']} in group {group['_id']}")
    return (await serialize_tasks(db, [doc]))[0]


async def update_task(
    db: AsyncIOMotorDatabase,
    caller: CurrentUser,
    group_id: str,
    task_id: str,
    data: TaskUpdate,
) -> dict:
    group = await _load_group(db, group_id)
    task = await _load_task(db, group, task_id)

    fields = allowed_fields(Resource.TASK, caller, group_id=group["_id"], denied_message="Access denied to this group.")
    updates = filter_update(data.model_dump(exclude_unset=True), fields)
    for key in NON_NULLABLE:
        if key in updates and updates[key] is None:
            updates.pop(key)

    if "assignedTo" in updates:
        updates["assignedTo"] = await _resolve_assignee(db, group, updates["assignedTo"])

    if "status" in updates:
        if updates["status"] == TaskStatus.COMPLETED.value:
            if task.get("status") != TaskStatus.COMPLETED.value or not task.get("completedAt"):
                updates["completedAt"] = datetime.utcnow()
        else:
            updates["completedAt"] = None

    if not updates:
        return (await serialize_tasks(db, [task]))[0]

    updates["updatedAt"] = datetime.utcnow()
    updated = await db.tasks.find_one_and_update(
        {"_id": task["_id"]},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return (await serialize_tasks(db, [updated]))[0]


async def delete_task(db: AsyncIOMotorDatabase, caller: CurrentUser, group_id: str, task_id: str):
    group = await _load_group(db, group_id)
    task = await _load_task(db, group, task_id)

    await db.tasks.delete_one({"_id": task["_id"]})
    await log_audit(db, caller, "delete_task", "task", task["_id"], {
        "groupId": str(group["_id"]),
        "title": task["title"],
    })
