from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.permissions import CurrentUser, authorize, get_current_user
from app.database import get_db
from app.students import student_service as service
from app.students.student_schemas import GiveXPRequest, StudentCreate, StudentUpdate
from app.users.user_models import Role

router = APIRouter(prefix="/students", tags=["Students"])

staff = authorize(Role.ADMIN, Role.SUPERADMIN)

# ==================== READ ====================

@router.get("")
async def list_students(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(staff),
):
    """
    Active students, xp desc
    Admins only see their own group
    """
    return {"success": True, "data": await service.list_students(db, user)}


@router.get("/{student_id}")
async def get_student(
    student_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Student profile with projects
    Students may only read themselves, admins their own group
    """
    return {"success": True, "data": await service.get_student(db, user, student_id)}

# ==================== WRITE ====================

@router.post("", status_code=201)
async def create_student(
    data: StudentCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(staff),
):
    return {"success": True, "data": await service.create_student(db, user, data)}


@router.put("/{student_id}")
async def update_student(
    student_id: str,
    data: StudentUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Fields outside the caller's write policy are ignored
    """
    return {"success": True, "data": await service.update_student(db, user, student_id, data)}


@router.delete("/{student_id}")
async def delete_student(
    student_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(staff),
):
    await service.delete_student(db, user, student_id)
    return {"success": True, "message": "Student deleted successfully"}


@router.post("/{student_id}/give-xp")
async def give_xp(
    student_id: str,
    data: GiveXPRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(staff),
):
    """
    Add XP to a student; level follows automatically
    """
    return {"success": True, "data": await service.give_xp(db, user, student_id, data)}
