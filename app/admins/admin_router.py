from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.admins import admin_service as service
from app.admins.admin_schemas import AdminCreate, AdminUpdate, AssignGroupRequest
from app.auth.permissions import CurrentUser, authorize
from app.database import get_db
from app.users.user_models import Role

router = APIRouter(prefix="/admins", tags=["Admins"])

superadmin_only = authorize(Role.SUPERADMIN)


@router.get("")
async def list_admins(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    return {"success": True, "data": await service.list_admins(db)}


@router.get("/{admin_id}")
async def get_admin(
    admin_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    """
    Admin with groupData (group + studentsCount)
    """
    return {"success": True, "data": await service.get_admin(db, admin_id)}


@router.post("", status_code=201)
async def create_admin(
    data: AdminCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    return {"success": True, "data": await service.create_admin(db, user, data)}


@router.put("/{admin_id}")
async def update_admin(
    admin_id: str,
    data: AdminUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    return {"success": True, "data": await service.update_admin(db, user, admin_id, data)}


@router.delete("/{admin_id}")
async def delete_admin(
    admin_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    await service.delete_admin(db, user, admin_id)
    return {"success": True, "message": "Admin deleted successfully"}


@router.put("/{admin_id}/assign-group")
async def assign_group(
    admin_id: str,
    data: AssignGroupRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    return {"success": True, "data": await service.assign_group(db, user, admin_id, data)}


@router.put("/{admin_id}/remove-group")
async def remove_group(
    admin_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    return {"success": True, "data": await service.remove_group(db, user, admin_id)}
