"""
Declarative write policy and read scope for every resource

FIELD_POLICY maps (resource, caller role, caller's relationship to the record)
to the set of fields that caller may write. Anything not listed is dropped
from an update body without error. A missing row means the caller may not
write the record at all.

Read scope (`scope_filter` / `in_scope`):
    student    -> only records they own (their own identity, their projects)
    admin      -> only records of the group they administer
    superadmin -> everything
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from app.common.errors import AuthorizationError
from app.common.serializers import maybe_oid
from app.users.user_models import Role


class Resource(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    GROUP = "group"
    PROJECT = "project"
    TASK = "task"


class Relationship(str, Enum):
    SELF = "self"                # identity editing itself
    OWNER = "owner"              # student editing a record they submitted
    GROUP_ADMIN = "group_admin"  # admin of the record's group
    ANY = "any"                  # superadmin


PROJECT_CONTENT_FIELDS = frozenset({"title", "description", "githubUrl", "liveUrl", "technologies"})
PROJECT_REVIEW_FIELDS = frozenset({"status", "reviewNotes", "xpAwarded"})
TASK_FIELDS = frozenset({"title", "description", "dueDate", "priority", "status", "assignedTo", "notes"})

FIELD_POLICY: Dict[tuple, FrozenSet[str]] = {
    (Resource.STUDENT, Role.STUDENT, Relationship.SELF): frozenset({"username", "email"}),
    (Resource.STUDENT, Role.ADMIN, Relationship.GROUP_ADMIN): frozenset({"username", "email", "xp"}),
    (Resource.STUDENT, Role.SUPERADMIN, Relationship.ANY): frozenset({"username", "email", "groupId", "xp"}),

    (Resource.ADMIN, Role.SUPERADMIN, Relationship.ANY): frozenset({"username", "email"}),

    # adminId only moves through assign-group/remove-group
    (Resource.GROUP, Role.SUPERADMIN, Relationship.ANY): frozenset({"name", "description", "maxStudents"}),

    (Resource.PROJECT, Role.STUDENT, Relationship.OWNER): PROJECT_CONTENT_FIELDS,
    (Resource.PROJECT, Role.ADMIN, Relationship.GROUP_ADMIN): PROJECT_REVIEW_FIELDS,
    (Resource.PROJECT, Role.SUPERADMIN, Relationship.ANY): PROJECT_CONTENT_FIELDS | PROJECT_REVIEW_FIELDS,

    (Resource.TASK, Role.ADMIN, Relationship.GROUP_ADMIN): TASK_FIELDS,
    (Resource.TASK, Role.SUPERADMIN, Relationship.ANY): TASK_FIELDS,
}

# Matches no document; used for callers with an empty scope
MATCH_NOTHING = {"_id": {"$in": []}}


def _same(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def resolve_relationship(
    resource: Resource,
    caller,
    owner_id: Any = None,
    group_id: Any = None,
) -> Optional[Relationship]:
    """How the caller relates to a record owned by `owner_id` in `group_id`"""
    if caller.role == Role.SUPERADMIN:
        return Relationship.ANY
    if caller.role == Role.ADMIN:
        return Relationship.GROUP_ADMIN if _same(caller.group_id, group_id) else None
    if caller.role == Role.STUDENT and _same(caller.user_id, owner_id):
        return Relationship.SELF if resource == Resource.STUDENT else Relationship.OWNER
    return None


def allowed_fields(
    resource: Resource,
    caller,
    owner_id: Any = None,
    group_id: Any = None,
    denied_message: str = "Access denied",
) -> FrozenSet[str]:
    relationship = resolve_relationship(resource, caller, owner_id, group_id)
    fields = FIELD_POLICY.get((resource, Role(caller.role), relationship))
    if fields is None:
        raise AuthorizationError(denied_message)
    return fields


def filter_update(data: Dict[str, Any], fields: FrozenSet[str]) -> Dict[str, Any]:
    """Keep only the allowed keys that were actually supplied"""
    return {key: value for key, value in data.items() if key in fields}


def scope_filter(resource: Resource, caller) -> Dict[str, Any]:
    """Mongo filter restricting a listing to the caller's scope"""
    if caller.role == Role.SUPERADMIN:
        return {}

    if caller.role == Role.ADMIN:
        if not caller.group_id:
            return dict(MATCH_NOTHING)
        return {"groupId": maybe_oid(caller.group_id)}

    if caller.role == Role.STUDENT:
        if resource == Resource.STUDENT:
            return {"_id": maybe_oid(caller.user_id)}
        if resource == Resource.PROJECT:
            return {"studentId": maybe_oid(caller.user_id)}

    return dict(MATCH_NOTHING)


def in_scope(resource: Resource, caller, doc: Dict[str, Any]) -> bool:
    """Python-side equivalent of scope_filter for a single fetched document"""
    if caller.role == Role.SUPERADMIN:
        return True

    if caller.role == Role.ADMIN:
        return _same(caller.group_id, doc.get("groupId"))

    if caller.role == Role.STUDENT:
        if resource == Resource.STUDENT:
            return _same(caller.user_id, doc.get("_id"))
        if resource == Resource.PROJECT:
            return _same(caller.user_id, doc.get("studentId"))

    return False
