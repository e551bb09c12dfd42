"""
Base classes for the service layer.

Every service is constructed with a pymongo Database handle and keeps no other
state, so a service can be built per request.
"""
import logging
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, serialize, to_object_id, utcnow
from errors import NotFoundError, StoreError


def store_call(action: str) -> Callable:
    """
    Decorator turning document store failures into StoreError.

    The original PyMongoError is chained and logged; nothing is retried.

    Example:
        @store_call("delete product")
        def delete_product(self, product_id):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except PyMongoError as e:
                self.logger.error(f"Failed to {action}: {e}", exc_info=True)
                raise StoreError(f"Failed to {action}") from e

        return wrapper

    return decorator


class BaseService:
    """
    Common plumbing: logger named after the class, collection lookup, and the
    read-or-404 / serialize helpers used by every screen.
    """

    collection_name = ""
    id_field = "id"
    label = "Document"

    def __init__(self, db: Database):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @property
    def collection(self):
        return self.db[self.collection_name]

    def _serialize(self, doc: Optional[dict]) -> Optional[dict]:
        return serialize(doc, self.id_field)

    def _find_or_404(self, doc_id: str, collection=None, session=None) -> dict:
        coll = self.collection if collection is None else collection
        doc = coll.find_one({"_id": to_object_id(doc_id)}, session=session)
        if not doc:
            raise NotFoundError(f"{self.label} not found")
        return doc

    def _list(self, filter_dict: Optional[Dict[str, Any]] = None, sort: Optional[list] = None) -> List[dict]:
        cursor = self.collection.find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        return [self._serialize(d) for d in cursor]


class DocumentService(BaseService):
    """Plain CRUD over one collection, newest first."""

    default_sort = [("created_at", DESCENDING)]

    def _create(self, data: Dict[str, Any]) -> dict:
        new_id = create_document(self.db, self.collection_name, data)
        self.logger.info(f"Created {self.label.lower()} {new_id}")
        return self._serialize(self.collection.find_one({"_id": to_object_id(new_id)}))

    def _update(self, doc_id: str, changes: Dict[str, Any]) -> dict:
        self._find_or_404(doc_id)
        changes = {**changes, "updated_at": utcnow()}
        self.collection.update_one({"_id": to_object_id(doc_id)}, {"$set": changes})
        return self._serialize(self.collection.find_one({"_id": to_object_id(doc_id)}))

    def _delete(self, doc_id: str) -> None:
        result = self.collection.delete_one({"_id": to_object_id(doc_id)})
        if result.deleted_count == 0:
            raise NotFoundError(f"{self.label} not found")
        self.logger.info(f"Deleted {self.label.lower()} {doc_id}")

    def _get(self, doc_id: str) -> dict:
        return self._serialize(self._find_or_404(doc_id))
