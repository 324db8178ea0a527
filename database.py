from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pymongo import ASCENDING, GEOSPHERE, MongoClient

import config
from errors import ValidationError

client = MongoClient(config.DATABASE_URL)
db = client[config.DATABASE_NAME]

# Fields that never leave the server
HIDDEN_FIELDS = {"password_hash"}


def get_db():
    return db


def ensure_indexes(database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["store"].create_index([("owner_id", ASCENDING)])
    database["store"].create_index([("location", GEOSPHERE)])
    # One rating per user per store
    database["rating"].create_index([("user_id", ASCENDING), ("store_id", ASCENDING)], unique=True)
    database["rating"].create_index([("store_id", ASCENDING), ("created_at", ASCENDING)])


def utcnow() -> datetime:
    # Mongo hands datetimes back as naive UTC; write them the same way
    return datetime.now(timezone.utc).replace(tzinfo=None)


def oid(obj: Any) -> str:
    return str(obj) if isinstance(obj, ObjectId) else str(ObjectId(obj))


def to_obj_id(id_str: str) -> ObjectId:
    if not ObjectId.is_valid(id_str):
        raise ValidationError("Invalid id", errors=[{"field": "id", "message": f"'{id_str}' is not a valid id"}])
    return ObjectId(id_str)


def camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(k): camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [camelize(v) for v in value]
    return value


def sanitize(doc: Optional[Dict]) -> Optional[Dict]:
    """Shape a stored document for a JSON response.

    ``_id`` becomes ``id``, private fields are dropped and snake_case keys are
    turned into the camelCase the dashboard expects.
    """
    if not doc:
        return doc
    d = {k: v for k, v in doc.items() if k not in HIDDEN_FIELDS}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return camelize(d)


def create_document(database, collection: str, data) -> Dict:
    """Insert a pydantic model (or dict) with timestamps and return the stored doc."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc.setdefault("updated_at", now)
    res = database[collection].insert_one(doc)
    doc["_id"] = res.inserted_id
    return doc


def check_connection(database) -> Dict[str, Any]:
    collections = database.list_collection_names()
    return {"database": "ok", "name": database.name, "collections": collections[:10]}
