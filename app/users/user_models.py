from datetime import datetime
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

# ==================== ENUMS ====================

class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

XP_PER_LEVEL = 100

def level_for_xp(xp: int) -> int:
    """Level is derived, never stored independently: floor(xp / 100) + 1"""
    return max(int(xp), 0) // XP_PER_LEVEL + 1

# ==================== DATABASE MODELS ====================

class User(BaseModel):
    """
    Identity document stored in `users`
    Students, admins and (store-backed) superadmins share this shape
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    username: str
    email: str
    password: str  # bcrypt hash
    role: Role = Role.STUDENT
    groupId: Optional[ObjectId] = None
    xp: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    isActive: bool = True
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        doc = self.model_dump()
        doc["level"] = level_for_xp(doc["xp"])
        return doc
