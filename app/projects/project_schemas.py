import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from app.projects.project_models import ProjectStatus

GITHUB_URL = re.compile(r"^https://github\.com/")
WEB_URL = re.compile(r"^https?://")

# ==================== VALIDATORS ====================

def _required_text(v, field_name: str):
    if isinstance(v, str):
        v = v.strip()
        if not v:
            raise ValueError(f"Project {field_name} is required")
    return v


def _check_github(v):
    if v is not None and not GITHUB_URL.match(v):
        raise ValueError("Must be a valid GitHub URL")
    return v


def _check_live(v):
    if v is not None and not WEB_URL.match(v):
        raise ValueError("Must be a valid URL")
    return v


def _clean_technologies(v):
    if v is None:
        return v
    return [tech.strip() for tech in v if tech and tech.strip()]


class _ProjectFields(BaseModel):
    """Validation shared by create and update bodies"""

    @field_validator("title", "description", mode="before", check_fields=False)
    @classmethod
    def validate_text(cls, v, info: ValidationInfo):
        return _required_text(v, info.field_name)

    @field_validator("githubUrl", check_fields=False)
    @classmethod
    def validate_github(cls, v):
        return _check_github(v)

    @field_validator("liveUrl", check_fields=False)
    @classmethod
    def validate_live(cls, v):
        return _check_live(v)

    @field_validator("technologies", check_fields=False)
    @classmethod
    def validate_technologies(cls, v):
        return _clean_technologies(v)

# ==================== REQUEST SCHEMAS ====================

class ProjectCreate(_ProjectFields):
    """
    Student submission; owner and group come from the token
    """
    title: str = Field(..., max_length=200)
    description: str = Field(..., max_length=2000)
    githubUrl: Optional[str] = None
    liveUrl: Optional[str] = None
    technologies: List[str] = []


class ProjectUpdate(_ProjectFields):
    """
    Union of content and review fields
    What is kept depends on who is writing
    """
    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    githubUrl: Optional[str] = None
    liveUrl: Optional[str] = None
    technologies: Optional[List[str]] = None
    status: Optional[ProjectStatus] = None
    reviewNotes: Optional[str] = Field(None, max_length=1000)
    xpAwarded: Optional[int] = Field(None, ge=0)
