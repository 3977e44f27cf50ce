from datetime import datetime, timezone
from typing import Any, Type

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from logging_config import logger


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError) as e:
        raise ValidationError(f"Invalid or missing {label}") from e


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or ObjectId.is_valid(str(value or ""))


def add_timestamps(data: dict, created: bool = True) -> dict:
    now = datetime.now(timezone.utc)
    data["updated_at"] = now
    if created:
        data.setdefault("created_at", now)
    return data


def validate_and_prepare(data: Any, schema_class: Type[BaseModel]) -> dict:
    """Validate an incoming dict against a schema and return its storable form."""
    try:
        validated = data if isinstance(data, schema_class) else schema_class(**data)
    except (PydanticValidationError, TypeError) as ve:
        logger.warning(f"Schema validation failed for {schema_class.__name__}: {ve}")
        raise ValidationError(f"Validation failed for {schema_class.__name__}") from ve
    return validated.model_dump(mode="python")


def serialize_document(doc: dict) -> dict:
    """Mongo document → plain dict with string ids."""
    data = dict(doc)
    if "_id" in data:
        data["id"] = str(data.pop("_id"))
    for key, value in data.items():
        if isinstance(value, ObjectId):
            data[key] = str(value)
    return data


def save_to_mongodb(collection, data: dict, entity_type: str = "document") -> str:
    try:
        result = collection.insert_one(data)
        doc_id = str(result.inserted_id)
        logger.info(f"Saved {entity_type} to MongoDB → _id = {doc_id}")
        return doc_id
    except Exception as e:
        logger.error(f"MongoDB insertion failed: {e}", exc_info=True)
        raise
