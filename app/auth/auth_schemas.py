from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.users.user_models import Role
from app.users.user_schemas import IdentityCreate

# ==================== REQUEST SCHEMAS ====================

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    role: Role

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Username is required")
        return v


class RegisterRequest(IdentityCreate):
    """
    Self-service sign up
    Superadmins cannot be registered; groupId is honoured for students only
    """
    role: Role = Role.STUDENT
    groupId: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v == Role.SUPERADMIN:
            raise ValueError("Role must be student or admin")
        return v

# ==================== RESPONSE SCHEMAS ====================

class UserSummary(BaseModel):
    id: str
    username: str
    role: Role
    email: Optional[str] = None
    groupId: Optional[str] = None
    groupName: Optional[str] = None
    xp: int = 0
    level: int = 1


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserSummary
