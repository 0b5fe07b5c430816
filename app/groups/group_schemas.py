from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.groups.group_models import DEFAULT_MAX_STUDENTS


def _clean_name(v):
    if isinstance(v, str):
        v = v.strip()
        if not v:
            raise ValueError("Group name is required")
    return v


def _clean_description(v):
    return v.strip() if isinstance(v, str) else v


class GroupCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    adminId: Optional[str] = None
    maxStudents: int = Field(DEFAULT_MAX_STUDENTS, ge=1, le=100)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return _clean_description(v)


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    maxStudents: Optional[int] = Field(None, ge=1, le=100)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return _clean_description(v)
