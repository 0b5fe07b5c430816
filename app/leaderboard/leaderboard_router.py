from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app import config
from app.database import get_db
from app.leaderboard import leaderboard_service as service

# Public: no authentication dependency on these routes
router = APIRouter(prefix="/leaderboard", tags=["Leaderboards"])


@router.get("")
async def get_leaderboard(
    group_id: Optional[str] = Query(None, alias="groupId"),
    limit: int = Query(config.LEADERBOARD_DEFAULT_LIMIT, ge=1),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """
    Student leaderboard, optionally restricted to one group
    """
    return {"success": True, "data": await service.student_leaderboard(db, group_id, limit)}


@router.get("/groups")
async def get_group_leaderboard(db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Groups ranked by total XP
    """
    return {"success": True, "data": await service.group_leaderboard(db)}
