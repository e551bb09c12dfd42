"""
Database connection and document helpers

The connection is configured from DATABASE_URL / DATABASE_NAME. Services never
import `db` directly; routes hand them a handle through `get_db` so tests can
swap in an in-memory database.
"""
import logging
import math
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client: Optional[MongoClient] = MongoClient(DATABASE_URL) if DATABASE_URL else None
db: Optional[Database] = client[DATABASE_NAME] if client is not None and DATABASE_NAME else None


def get_db() -> Database:
    if db is None:
        raise RuntimeError("Database is not configured (set DATABASE_URL and DATABASE_NAME)")
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands back naive datetimes in UTC; make them comparable with aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def naive_utc(value: datetime) -> datetime:
    """Query bound in the naive-UTC form the store compares against."""
    return as_utc(value).replace(tzinfo=None)


def to_object_id(id_str: str) -> Any:
    # Logistics rates are keyed by province slug, everything else by ObjectId
    if isinstance(id_str, ObjectId):
        return id_str
    if ObjectId.is_valid(id_str):
        return ObjectId(id_str)
    return id_str


def serialize(doc: Optional[dict], id_field: str = "id") -> Optional[dict]:
    if not doc:
        return doc
    d = doc.copy()
    if "_id" in d:
        d[id_field] = str(d.pop("_id"))
    # Convert any nested ObjectIds (best-effort)
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
    return d


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> str:
    now = utcnow()
    doc = {**data, "created_at": now, "updated_at": now}
    inserted_id = database[collection_name].insert_one(doc).inserted_id
    return str(inserted_id)


def paginate(
    database: Database,
    collection_name: str,
    filter_dict: Dict[str, Any],
    page: int = 1,
    limit: int = 10,
    sort: Optional[List[tuple]] = None,
) -> Dict[str, Any]:
    """Run one filtered query and page it; total and total_pages describe the whole filtered set."""
    page = max(page, 1)
    limit = max(limit, 1)
    total = database[collection_name].count_documents(filter_dict)
    cursor = database[collection_name].find(filter_dict)
    if sort:
        cursor = cursor.sort(sort)
    cursor = cursor.skip((page - 1) * limit).limit(limit)
    return {
        "data": list(cursor),
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


@contextmanager
def transaction(database: Database):
    """Yield a session whose writes commit together on exit or abort on error.

    Requires MongoDB running as a replica set.
    """
    with database.client.start_session() as session:
        with session.start_transaction():
            yield session
