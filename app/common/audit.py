from datetime import datetime

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field


class AuditLog(BaseModel):
    actorId: str
    actorRole: str  # student, admin, superadmin
    action: str  # give_xp, review_project, assign_group, delete_student, etc.
    targetType: str  # student, admin, group, project, task
    targetId: str
    metadata: dict = {}
    timestamp: datetime = Field(default_factory=datetime.utcnow)


async def log_audit(
    db: AsyncIOMotorDatabase,
    actor,
    action: str,
    target_type: str,
    target_id,
    metadata: dict = None,
    session=None,
):
    """
    Record an XP-affecting, relationship-changing or destructive action

    Args:
        actor: CurrentUser performing the action
        action: Action performed (e.g., 'give_xp', 'delete_group')
        target_type: Resource type (e.g., 'student', 'project')
        target_id: ID of the resource
        metadata: Additional context (optional)
    """
    audit_log = AuditLog(
        actorId=actor.user_id,
        actorRole=actor.role.value,
        action=action,
        targetType=target_type,
        targetId=str(target_id),
        metadata=metadata or {},
    )

    kwargs = {"session": session} if session is not None else {}
    await db.audit_logs.insert_one(audit_log.model_dump(), **kwargs)
