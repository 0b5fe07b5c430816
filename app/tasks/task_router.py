from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.permissions import CurrentUser, is_group_admin
from app.database import get_db
from app.tasks import task_service as service
from app.tasks.task_models import TaskStatus
from app.tasks.task_schemas import TaskCreate, TaskUpdate

router = APIRouter(prefix="/groups/{group_id}/tasks", tags=["Group Tasks"])


@router.get("")
async def list_tasks(
    group_id: str,
    status: Optional[TaskStatus] = Query(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(is_group_admin),
):
    """
    Tasks of a group; group admin or superadmin only
    """
    return {"success": True, "data": await service.list_tasks(db, group_id, status)}


@router.post("", status_code=201)
async def create_task(
    group_id: str,
    data: TaskCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(is_group_admin),
):
    return {"success": True, "data": await service.create_task(db, user, group_id, data)}


@router.put("/{task_id}")
async def update_task(
    group_id: str,
    task_id: str,
    data: TaskUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(is_group_admin),
):
    """
    Moving to completed stamps completedAt; any other status clears it
    """
    return {"success": True, "data": await service.update_task(db, user, group_id, task_id, data)}


@router.delete("/{task_id}")
async def delete_task(
    group_id: str,
    task_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(is_group_admin),
):
    await service.delete_task(db, user, group_id, task_id)
    return {"success": True, "message": "Task deleted successfully"}
