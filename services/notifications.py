from typing import List

from pymongo.errors import PyMongoError

from database import to_object_id
from errors import NotFoundError, PartialBatchFailure, StoreError
from schemas import NotificationIn
from services.base import DocumentService, store_call


class NotificationService(DocumentService):
    """Append-only event log; the only mutation is flipping is_read to true."""

    collection_name = "notifications"
    id_field = "notif_id"
    label = "Notification"

    @store_call("fetch notifications")
    def list_notifications(self, unread_only: bool = False) -> List[dict]:
        return self._list({"is_read": False} if unread_only else {}, sort=self.default_sort)

    @store_call("fetch notifications")
    def unread_count(self) -> int:
        return self.collection.count_documents({"is_read": False})

    @store_call("create notification")
    def create_notification(self, data: NotificationIn) -> dict:
        return self._create({**data.model_dump(), "is_read": False})

    @store_call("mark notification as read")
    def mark_as_read(self, notif_id: str) -> dict:
        result = self.collection.update_one({"_id": to_object_id(notif_id)}, {"$set": {"is_read": True}})
        if result.matched_count == 0:
            raise NotFoundError("Notification not found")
        return self._get(notif_id)

    def mark_all_as_read(self) -> List[str]:
        """
        Mark every unread notification one at a time.

        Not atomic: when some updates fail the others stay marked and
        PartialBatchFailure reports both sets of ids.
        """
        try:
            unread = [str(d["_id"]) for d in self.collection.find({"is_read": False}, {"_id": 1})]
        except PyMongoError as e:
            self.logger.error(f"Failed to fetch notifications: {e}", exc_info=True)
            raise StoreError("Failed to fetch notifications") from e

        succeeded: List[str] = []
        failed: List[str] = []
        for notif_id in unread:
            try:
                self.mark_as_read(notif_id)
                succeeded.append(notif_id)
            except (StoreError, NotFoundError):
                failed.append(notif_id)

        if failed:
            raise PartialBatchFailure(
                f"Marked {len(succeeded)} of {len(unread)} notifications as read",
                succeeded=succeeded,
                failed=failed,
            )
        self.logger.info(f"Marked {len(succeeded)} notifications as read")
        return succeeded
