"""
TV content CMS

Ordered categories, each owning a set of content items stored in the
`tvCategories.contents` collection under the parent's id. Removing a category
removes its contents in the same transaction.
"""
from typing import List

from pymongo import ASCENDING, DESCENDING

import database
from database import to_object_id
from errors import NotFoundError, ValidationError
from schemas import TvCategoryIn, TvCategoryUpdate, TvContentIn, TvContentUpdate
from services.base import DocumentService, store_call

TV_CATEGORIES_COLLECTION = "tvCategories"
TV_CONTENTS_COLLECTION = "tvCategories.contents"


class TvCategoryService(DocumentService):
    collection_name = TV_CATEGORIES_COLLECTION
    label = "Category"

    @property
    def contents(self):
        return self.db[TV_CONTENTS_COLLECTION]

    @store_call("fetch TV categories")
    def list_categories(self) -> List[dict]:
        return self._list(sort=[("order", ASCENDING)])

    @store_call("fetch TV category")
    def get_category(self, category_id: str) -> dict:
        return self._get(category_id)

    @store_call("create TV category")
    def create_category(self, data: TvCategoryIn) -> dict:
        title = data.title.strip()
        if not title:
            raise ValidationError("Category title is required")
        if data.order < 1:
            raise ValidationError("Order must be at least 1")
        return self._create({"title": title, "order": data.order})

    @store_call("update TV category")
    def update_category(self, category_id: str, data: TvCategoryUpdate) -> dict:
        changes = data.model_dump(exclude_unset=True)
        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
            if not changes["title"]:
                raise ValidationError("Category title is required")
        if "order" in changes and (changes["order"] is None or changes["order"] < 1):
            raise ValidationError("Order must be at least 1")
        return self._update(category_id, changes)

    @store_call("delete TV category")
    def delete_category(self, category_id: str) -> int:
        """
        Delete a category and every content item under it, all or nothing.

        The content set is read inside the transaction, so only what the
        transaction itself saw is deleted. Returns the number of contents removed.
        """
        with database.transaction(self.db) as session:
            self._find_or_404(category_id, session=session)
            content_ids = [
                d["_id"] for d in self.contents.find({"category_id": category_id}, {"_id": 1}, session=session)
            ]
            if content_ids:
                self.contents.delete_many({"_id": {"$in": content_ids}}, session=session)
            self.collection.delete_one({"_id": to_object_id(category_id)}, session=session)

        self.logger.info(f"Deleted TV category {category_id} with {len(content_ids)} contents")
        return len(content_ids)

    @store_call("get next order")
    def get_next_order(self) -> int:
        # Full scan
        orders = [c.get("order", 0) for c in self.collection.find({}, {"order": 1})]
        return max(orders) + 1 if orders else 1


class TvContentService(DocumentService):
    collection_name = TV_CONTENTS_COLLECTION
    label = "Content"

    def _find_content(self, category_id: str, content_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(content_id), "category_id": category_id})
        if not doc:
            raise NotFoundError("Content not found")
        return doc

    @store_call("fetch TV contents")
    def list_contents(self, category_id: str) -> List[dict]:
        return self._list({"category_id": category_id}, sort=[("created_at", DESCENDING)])

    @store_call("fetch TV content")
    def get_content(self, category_id: str, content_id: str) -> dict:
        return self._serialize(self._find_content(category_id, content_id))

    @store_call("create TV content")
    def create_content(self, category_id: str, data: TvContentIn) -> dict:
        if not data.title.strip():
            raise ValidationError("Content title is required")
        return self._create({**data.model_dump(), "title": data.title.strip(), "category_id": category_id})

    @store_call("update TV content")
    def update_content(self, category_id: str, content_id: str, data: TvContentUpdate) -> dict:
        self._find_content(category_id, content_id)
        changes = data.model_dump(exclude_unset=True)
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("Content title is required")
        return self._update(content_id, changes)

    @store_call("delete TV content")
    def delete_content(self, category_id: str, content_id: str) -> None:
        self._find_content(category_id, content_id)
        self._delete(content_id)

    @store_call("count TV contents")
    def count_contents(self, category_id: str) -> int:
        return self.collection.count_documents({"category_id": category_id})
