"""
MongoDB access helpers

`db` is the live database handle (None when DATABASE_URL / DATABASE_NAME are
not set). Helpers look it up at call time, so tests can swap it out.
Collection names are the lowercase schema names from schemas.py.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient

import config
from logger import get_logger

log = get_logger("database")


class DatabaseNotConfigured(RuntimeError):
    pass


db = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]
    log.info("Connected to MongoDB database %s", config.DATABASE_NAME)
else:
    log.warning("DATABASE_URL / DATABASE_NAME not set, database disabled")


def _db():
    if db is None:
        raise DatabaseNotConfigured("Database not configured")
    return db


def to_object_id(value: Union[str, ObjectId]) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Expose `_id` as a string `id`."""
    if doc is None:
        return None
    out = dict(doc)
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    return out


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    result = _db()[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
    sort: Optional[list] = None,
) -> list[dict]:
    cursor = _db()[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(collection_name: str, doc_id: str, extra: Optional[dict] = None) -> Optional[dict]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    query = {"_id": oid}
    if extra:
        query.update(extra)
    return _db()[collection_name].find_one(query)


def count_documents(collection_name: str, filter_dict: Optional[dict] = None) -> int:
    return _db()[collection_name].count_documents(filter_dict or {})


def update_document(collection_name: str, doc_id: str, changes: dict[str, Any]) -> bool:
    oid = to_object_id(doc_id)
    if oid is None:
        return False
    changes = dict(changes)
    changes["updated_at"] = datetime.now(timezone.utc)
    result = _db()[collection_name].update_one({"_id": oid}, {"$set": changes})
    return result.matched_count > 0


def increment_field(collection_name: str, doc_id: str, field: str, amount: int = 1) -> None:
    oid = to_object_id(doc_id)
    if oid is None:
        return
    _db()[collection_name].update_one(
        {"_id": oid},
        {"$inc": {field: amount}, "$set": {"updated_at": datetime.now(timezone.utc)}},
    )


def delete_document(collection_name: str, doc_id: str) -> bool:
    oid = to_object_id(doc_id)
    if oid is None:
        return False
    return _db()[collection_name].delete_one({"_id": oid}).deleted_count > 0


def delete_documents(collection_name: str, filter_dict: dict) -> int:
    return _db()[collection_name].delete_many(filter_dict).deleted_count


def list_collection_names() -> list[str]:
    return _db().list_collection_names()
