from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId

from votely.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # MongoDB hands back naive datetimes that are already in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_object_id(value, label: str = "record") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label} ID format.")


def id_str(value):
    return str(value) if value is not None else None
