from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.permissions import CurrentUser, authorize, get_current_user
from app.database import get_db
from app.projects import project_service as service
from app.projects.project_models import ProjectStatus
from app.projects.project_schemas import ProjectCreate, ProjectUpdate
from app.users.user_models import Role

router = APIRouter(prefix="/projects", tags=["Projects"])

# ==================== READ ====================

@router.get("")
async def list_projects(
    status: Optional[ProjectStatus] = Query(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Projects visible to the caller, newest first
    """
    return {"success": True, "data": await service.list_projects(db, user, status)}


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return {"success": True, "data": await service.get_project(db, user, project_id)}

# ==================== WRITE ====================

@router.post("", status_code=201)
async def submit_project(
    data: ProjectCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(authorize(Role.STUDENT)),
):
    """
    Submit a project into the student's group
    """
    return {"success": True, "data": await service.create_project(db, user, data)}


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Students edit content of their own projects
    Admins review projects of their group (status, reviewNotes, xpAwarded)
    """
    return {"success": True, "data": await service.update_project(db, user, project_id, data)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    await service.delete_project(db, user, project_id)
    return {"success": True, "message": "Project deleted successfully"}
