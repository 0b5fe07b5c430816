from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

# ==================== SHARED FIELD RULES ====================

def clean_username(v):
    if isinstance(v, str):
        v = v.strip()
        if not 3 <= len(v) <= 50:
            raise ValueError("Username must be 3-50 characters")
    return v


def clean_email(v):
    return v.lower() if isinstance(v, str) else v

# ==================== REQUEST SCHEMAS ====================

class IdentityCreate(BaseModel):
    """
    Fields every new identity needs
    """
    username: str
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v):
        return clean_username(v)

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v):
        return clean_email(v)


class IdentityUpdate(BaseModel):
    """
    Every field optional; the field policy decides what is kept
    """
    username: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v):
        return clean_username(v)

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v):
        return clean_email(v)
