from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth import auth_service as service
from app.auth.auth_schemas import AuthResponse, LoginRequest, RegisterRequest
from app.database import get_db

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Exchange username + password + role for a bearer token
    """
    result = await service.authenticate(db, data.username, data.password, data.role)
    return {"success": True, **result}


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(data: RegisterRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Create a student or admin identity and sign it in
    """
    result = await service.register(db, data)
    return {"success": True, **result}
