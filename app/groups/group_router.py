from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.permissions import CurrentUser, authorize, get_current_user
from app.database import get_db
from app.groups import group_service as service
from app.groups.group_schemas import GroupCreate, GroupUpdate
from app.users.user_models import Role

router = APIRouter(prefix="/groups", tags=["Groups"])

superadmin_only = authorize(Role.SUPERADMIN)

# ==================== READ ====================

@router.get("")
async def list_groups(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Active groups with admin and studentCount
    Readable by any signed-in identity
    """
    return {"success": True, "data": await service.list_groups(db)}


@router.get("/{group_id}")
async def get_group(
    group_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return {"success": True, "data": await service.get_group(db, group_id)}

# ==================== WRITE ====================

@router.post("", status_code=201)
async def create_group(
    data: GroupCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    return {"success": True, "data": await service.create_group(db, user, data)}


@router.put("/{group_id}")
async def update_group(
    group_id: str,
    data: GroupUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    return {"success": True, "data": await service.update_group(db, user, group_id, data)}


@router.delete("/{group_id}")
async def delete_group(
    group_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(superadmin_only),
):
    await service.delete_group(db, user, group_id)
    return {"success": True, "message": "Group deleted successfully"}
