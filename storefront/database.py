"""
MongoDB access shared by every service.

- `client` / `db`  : process-wide pymongo client and database (lazy connect)
- `get_db()`       : FastAPI dependency, overridden in tests
- `ensure_indexes` : unique constraints the domain modules rely on
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from storefront.config import DATABASE_NAME, DATABASE_URL

client = MongoClient(DATABASE_URL)
db = client[DATABASE_NAME]


def get_db() -> Database:
    return db


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    # One review per user and product
    database["review"].create_index(
        [("user_id", ASCENDING), ("product_id", ASCENDING)], unique=True
    )
    database["order"].create_index([("user_id", ASCENDING)])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; malformed ids come back as None so callers report them as missing."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.get("_id")
    if isinstance(_id, ObjectId):
        doc["id"] = str(_id)
        del doc["_id"]
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    document = dict(data)
    now = utcnow()
    document.setdefault("created_at", now)
    document["updated_at"] = now
    result = database[collection_name].insert_one(document)
    return str(result.inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  projection: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {}, projection)
    return [serialize_doc(d) for d in cursor]


def find_by_id(database: Database, collection_name: str, doc_id: Any,
               projection: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    obj_id = to_object_id(doc_id)
    if obj_id is None:
        return None
    return database[collection_name].find_one({"_id": obj_id}, projection)


def populate(database: Database, docs: Iterable[Dict[str, Any]], ref_field: str, target: str,
             collection_name: str, fields: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Attach `{id, <fields>}` of the referenced document under `target`.

    `docs` must already be serialized; references that no longer resolve become None.
    """
    docs = list(docs)
    ids = {to_object_id(d.get(ref_field)) for d in docs} - {None}
    projection = {f: 1 for f in fields}
    found = {
        str(ref["_id"]): serialize_doc(ref)
        for ref in database[collection_name].find({"_id": {"$in": list(ids)}}, projection)
    }
    for d in docs:
        d[target] = found.get(d.get(ref_field))
    return docs
