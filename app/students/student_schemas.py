from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.users.user_schemas import IdentityCreate, IdentityUpdate

# ==================== REQUEST SCHEMAS ====================

class StudentCreate(IdentityCreate):
    """
    Admin or superadmin enrolls a student
    Admins always enroll into their own group; groupId is read for superadmins only
    """
    groupId: Optional[str] = None


class StudentUpdate(IdentityUpdate):
    groupId: Optional[str] = None  # null removes the student from its group
    xp: Optional[int] = Field(None, ge=0)


class GiveXPRequest(BaseModel):
    amount: int = Field(..., ge=1)
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("reason", mode="before")
    @classmethod
    def validate_reason(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Reason cannot be empty")
        return v
