from datetime import datetime
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_STUDENTS = 30


class Group(BaseModel):
    """
    Cohort document stored in `groups`
    adminId mirrors the admin's groupId; both sides change together
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    name: str
    description: Optional[str] = None
    adminId: Optional[ObjectId] = None
    maxStudents: int = Field(DEFAULT_MAX_STUDENTS, ge=1, le=100)
    isActive: bool = True
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)
