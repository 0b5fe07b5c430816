from pydantic import BaseModel

from app.users.user_schemas import IdentityCreate, IdentityUpdate


class AdminCreate(IdentityCreate):
    """
    New admins start unlinked; use assign-group to give them a group
    """


class AdminUpdate(IdentityUpdate):
    pass


class AssignGroupRequest(BaseModel):
    groupId: str
