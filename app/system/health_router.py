from datetime import datetime

from fastapi import APIRouter

from app import config

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_check():
    """
    Liveness probe; does not touch the database
    """
    return {
        "status": "OK",
        "message": "XP Mentorship API is running",
        "version": config.VERSION,
        "timestamp": datetime.utcnow().isoformat(),
    }
