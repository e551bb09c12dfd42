from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import get_db
from schemas import NotificationIn
from security import require_admin
from services.notifications import NotificationService

router = APIRouter(prefix="/notifications", dependencies=[Depends(require_admin)])


def get_notification_service(db: Database = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("")
def list_notifications(unread_only: bool = False, service: NotificationService = Depends(get_notification_service)):
    return {"items": service.list_notifications(unread_only), "unread": service.unread_count()}


@router.post("", status_code=201)
def create_notification(payload: NotificationIn, service: NotificationService = Depends(get_notification_service)):
    return service.create_notification(payload)


@router.post("/read-all")
def mark_all_as_read(service: NotificationService = Depends(get_notification_service)):
    marked = service.mark_all_as_read()
    return {"marked": marked}


@router.post("/{notif_id}/read")
def mark_as_read(notif_id: str, service: NotificationService = Depends(get_notification_service)):
    return service.mark_as_read(notif_id)
