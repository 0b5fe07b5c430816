import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app import config
from app.auth.permissions import CurrentUser
from app.common.audit import log_audit
from app.common.consistency import ConsistentUpdate, session_kwargs
from app.common.errors import AuthorizationError, NotFoundError, ValidationError
from app.common.field_policy import Resource, allowed_fields, filter_update, in_scope, scope_filter
from app.common.serializers import maybe_oid, oid, serialize_mongo
from app.projects.project_models import Project, ProjectStatus
from app.projects.project_schemas import ProjectCreate, ProjectUpdate
from app.users.user_models import Role
from app.users.user_service import group_names, increment_xp, user_names

logger = logging.getLogger(__name__)

PROJECT_NOT_FOUND = "Project not found"
PROJECT_DENIED = "Access denied to this project"

# Fields that may never be written as null
NON_NULLABLE = ("title", "description", "technologies", "status", "xpAwarded")


async def _load_project(db: AsyncIOMotorDatabase, project_id: str) -> dict:
    project = await db.projects.find_one({"_id": oid(project_id, PROJECT_NOT_FOUND)})
    if not project:
        raise NotFoundError(PROJECT_NOT_FOUND)
    return project


async def serialize_projects(db: AsyncIOMotorDatabase, projects: List[dict]) -> List[dict]:
    """Flat project documents plus studentName, groupName and reviewerName"""
    people = await user_names(
        db,
        [p.get("studentId") for p in projects] + [p.get("reviewedBy") for p in projects],
    )
    groups = await group_names(db, [p.get("groupId") for p in projects])

    results = []
    for project in projects:
        data = serialize_mongo(project)
        data["studentName"] = people.get(str(project.get("studentId")))
        data["groupName"] = groups.get(str(project.get("groupId")))

        reviewer = project.get("reviewedBy")
        if reviewer == config.SUPERADMIN_ID:
            data["reviewerName"] = config.SUPERADMIN_USERNAME
        else:
            data["reviewerName"] = people.get(str(reviewer)) if reviewer else None
        results.append(data)
    return results


async def serialize_project(db: AsyncIOMotorDatabase, project: dict) -> dict:
    return (await serialize_projects(db, [project]))[0]

# ==================== READ ====================

async def list_projects(
    db: AsyncIOMotorDatabase,
    caller: CurrentUser,
    status: Optional[ProjectStatus] = None,
) -> List[dict]:
    """
    student    -> own submissions
    admin      -> submissions from their group
    superadmin -> everything
    """
    query = scope_filter(Resource.PROJECT, caller)
    if status:
        query["status"] = ProjectStatus(status).value

    projects = await db.projects.find(query).sort("createdAt", -1).to_list(length=None)
    return await serialize_projects(db, projects)


async def get_project(db: AsyncIOMotorDatabase, caller: CurrentUser, project_id: str) -> dict:
    project = await _load_project(db, project_id)

    if not in_scope(Resource.PROJECT, caller, project):
        logger.info(f"{caller.role.value} {caller.user_id} denied read on project {project['_id']}")
        raise NotFoundError(PROJECT_NOT_FOUND)

    return await serialize_project(db, project)

# ==================== WRITE ====================

async def create_project(db: AsyncIOMotorDatabase, caller: CurrentUser, data: ProjectCreate) -> dict:
    if not caller.group_id:
        raise ValidationError("Student must be assigned to a group to submit projects")

    project = Project(
        title=data.title,
        description=data.description,
        studentId=caller.object_id,
        groupId=maybe_oid(caller.group_id),
        githubUrl=data.githubUrl,
        liveUrl=data.liveUrl,
        technologies=data.technologies,
    )
    doc = project.model_dump()
    result = await db.projects.insert_one(doc)
    doc["_id"] = result.inserted_id

    logger.info(f"Student {caller.user_id} submitted project {doc['_id']}")
    return await serialize_project(db, doc)


async def update_project(
    db: AsyncIOMotorDatabase,
    caller: CurrentUser,
    project_id: str,
    data: ProjectUpdate,
) -> dict:
    """
    Content edits by the owner, reviews by the group's admin, both by a superadmin

    A status write by a reviewer stamps reviewedBy/reviewedAt. While the
    resulting status is `approved`, the owner is credited (or debited) the
    gap between xpAwarded and xpCredited in the same consistent update as
    the project write. Leaving `approved` keeps what was already paid.
    """
    project = await _load_project(db, project_id)

    fields = allowed_fields(
        Resource.PROJECT,
        caller,
        owner_id=project.get("studentId"),
        group_id=project.get("groupId"),
        denied_message=PROJECT_DENIED,
    )
    updates = filter_update(data.model_dump(exclude_unset=True), fields)
    for key in NON_NULLABLE:
        if key in updates and updates[key] is None:
            updates.pop(key)

    if not updates:
        return await serialize_project(db, project)

    reviewing = "status" in updates and caller.role in (Role.ADMIN, Role.SUPERADMIN)
    if reviewing:
        updates["reviewedBy"] = caller.object_id
        updates["reviewedAt"] = datetime.utcnow()

    # While approved the owner holds exactly xpAwarded from this project;
    # xpCredited records what has been paid so far, so only the difference moves.
    previous_status = project.get("status")
    credited = project.get("xpCredited", 0)
    delta = 0
    if updates.get("status", previous_status) == ProjectStatus.APPROVED.value:
        target = updates.get("xpAwarded", project.get("xpAwarded", 0))
        delta = target - credited
        if delta:
            updates["xpCredited"] = target

    updates["updatedAt"] = datetime.utcnow()

    previous = {key: project[key] for key in updates if key in project}
    missing = [key for key in updates if key not in project]

    async def write_project(session=None):
        await db.projects.update_one({"_id": project["_id"]}, {"$set": updates}, **session_kwargs(session))

    async def restore_project():
        restore = {"$set": previous} if previous else {}
        if missing:
            restore["$unset"] = {key: "" for key in missing}
        await db.projects.update_one({"_id": project["_id"]}, restore)

    update = ConsistentUpdate(db, f"review project {project['_id']}")
    update.add(write_project, undo=restore_project)

    if delta:
        student_id = project["studentId"]

        async def adjust_owner(session=None):
            if await increment_xp(db, student_id, delta, session=session) is None:
                raise NotFoundError("Student not found")

        async def revert_owner():
            await increment_xp(db, student_id, -delta)

        update.add(adjust_owner, undo=revert_owner)

    await update.commit()

    if reviewing or delta:
        await log_audit(db, caller, "review_project", "project", project["_id"], {
            "fromStatus": previous_status,
            "toStatus": updates.get("status", previous_status),
            "xpDelta": delta,
            "studentId": str(project["studentId"]),
        })

    updated = await db.projects.find_one({"_id": project["_id"]})
    return await serialize_project(db, updated)


async def delete_project(db: AsyncIOMotorDatabase, caller: CurrentUser, project_id: str):
    """
    Hard delete by the owner, the group's admin or a superadmin
    """
    project = await _load_project(db, project_id)

    if not in_scope(Resource.PROJECT, caller, project):
        logger.info(f"{caller.role.value} {caller.user_id} denied delete on project {project['_id']}")
        raise AuthorizationError(PROJECT_DENIED)

    await db.projects.delete_one({"_id": project["_id"]})
    await log_audit(db, caller, "delete_project", "project", project["_id"], {
        "title": project["title"],
        "studentId": str(project["studentId"]),
    })
