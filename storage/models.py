"""
Document-level enums and helpers shared by the repositories.
Stored documents use snake_case field names and ObjectId references.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId

from utilities.errors import ValidationFailed


class ClubSchedule(str, Enum):
    """How often a club meets."""
    WEEKLY = "Weekly"
    BIWEEKLY = "Biweekly"
    MONTHLY = "Monthly"


class MeetingStatus(str, Enum):
    """Meeting lifecycle status."""
    SCHEDULED = "Scheduled"
    CANCELED = "Canceled"
    COMPLETED = "Completed"


class PublishedMonth(str, Enum):
    """Month names accepted for a book's publication date."""
    JANUARY = "January"
    FEBRUARY = "February"
    MARCH = "March"
    APRIL = "April"
    MAY = "May"
    JUNE = "June"
    JULY = "July"
    AUGUST = "August"
    SEPTEMBER = "September"
    OCTOBER = "October"
    NOVEMBER = "November"
    DECEMBER = "December"


def to_object_id(value: Any, field_name: str = "id") -> ObjectId:
    """
    Convert an opaque identifier to an ObjectId.

    Args:
        value: 24-hex-character string (or an ObjectId)
        field_name: Name used in the error message

    Returns:
        ObjectId instance

    Raises:
        ValidationFailed: If the value is not a valid identifier
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationFailed(f"Invalid {field_name} format.")


def optional_object_id(value: Any, field_name: str = "id") -> Optional[ObjectId]:
    """Like to_object_id, but passes None through."""
    if value is None:
        return None
    return to_object_id(value, field_name)


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def serialize_document(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Convert a stored document into a plain dictionary.

    `_id` becomes `id` and every ObjectId reference becomes its hex string.
    """
    if document is None:
        return None
    result = {key: _plain(value) for key, value in document.items() if key != "_id"}
    result["id"] = str(document["_id"])
    return result


def utcnow() -> datetime:
    """Timestamp used for created_at / updated_at fields."""
    return datetime.utcnow()
