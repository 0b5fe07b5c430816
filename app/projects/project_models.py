from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

# ==================== ENUMS ====================

class ProjectStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"

# ==================== DATABASE MODELS ====================

class Project(BaseModel):
    """
    Submission stored in `projects`
    groupId is copied from the student at submission time
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    title: str
    description: str
    studentId: ObjectId
    groupId: ObjectId
    githubUrl: Optional[str] = None
    liveUrl: Optional[str] = None
    technologies: List[str] = []
    status: ProjectStatus = ProjectStatus.SUBMITTED
    xpAwarded: int = Field(0, ge=0)
    # XP actually added to the owner for this project
    xpCredited: int = Field(0, ge=0)
    reviewNotes: Optional[str] = None
    reviewedBy: Optional[Union[ObjectId, str]] = None
    reviewedAt: Optional[datetime] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)
