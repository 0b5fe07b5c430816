from datetime import datetime
from enum import Enum
from typing import Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

# ==================== ENUMS ====================

class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# ==================== DATABASE MODELS ====================

class AdminTask(BaseModel):
    """
    Work item an admin tracks for their group, stored in `tasks`
    completedAt is set while status is completed and cleared otherwise
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    title: str
    description: str
    groupId: ObjectId
    createdBy: Union[ObjectId, str]
    dueDate: datetime
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assignedTo: Optional[ObjectId] = None
    completedAt: Optional[datetime] = None
    notes: Optional[str] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)
