from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from app.tasks.task_models import TaskPriority, TaskStatus


class _TaskFields(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "description", mode="before", check_fields=False)
    @classmethod
    def validate_text(cls, v, info: ValidationInfo):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError(f"Task {info.field_name} is required")
        return v

    @field_validator("dueDate", check_fields=False)
    @classmethod
    def normalize_due_date(cls, v):
        # stored as naive UTC, like every other timestamp
        if isinstance(v, datetime) and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("notes", mode="before", check_fields=False)
    @classmethod
    def strip_notes(cls, v):
        return v.strip() if isinstance(v, str) else v


class TaskCreate(_TaskFields):
    title: str = Field(..., max_length=200)
    description: str = Field(..., max_length=2000)
    dueDate: datetime
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assignedTo: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)


class TaskUpdate(_TaskFields):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    dueDate: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assignedTo: Optional[str] = None  # null unassigns
    notes: Optional[str] = Field(None, max_length=1000)
