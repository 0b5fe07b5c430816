from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from app.common.errors import NotFoundError, ValidationError

HIDDEN_FIELDS = {"password"}


def oid(id_str: Any, not_found: Optional[str] = None) -> ObjectId:
    """
    Parse an ObjectId
    Path ids answer 404 (`not_found` message), body ids answer 400
    """
    if isinstance(id_str, ObjectId):
        return id_str
    try:
        return ObjectId(str(id_str))
    except (InvalidId, TypeError):
        if not_found:
            raise NotFoundError(not_found)
        raise ValidationError("Invalid id format")


def maybe_oid(value: Any) -> Any:
    """ObjectId when the value parses as one, the value unchanged otherwise"""
    if value is None or isinstance(value, ObjectId):
        return value
    if ObjectId.is_valid(str(value)):
        return ObjectId(str(value))
    return value


def id_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _convert(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value


def serialize_mongo(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """_id -> id, ObjectId -> str, datetime -> ISO string, credentials removed"""
    if doc is None:
        return None
    d = {k: v for k, v in doc.items() if k not in HIDDEN_FIELDS}
    if "_id" in d:
        d["id"] = d.pop("_id")
    return _convert(d)


def serialize_many(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_mongo(doc) for doc in docs]
