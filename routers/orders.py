from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import get_db
from schemas import OrderCreate, OrderStatus, OrderStatusUpdate, PaymentStatus, PaymentStatusUpdate
from security import require_admin
from services.orders import OrderService

router = APIRouter(prefix="/orders", dependencies=[Depends(require_admin)])


def get_order_service(db: Database = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.get("")
def list_orders(
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    user_id: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 10,
    service: OrderService = Depends(get_order_service),
):
    filters = {
        "status": status,
        "payment_status": payment_status,
        "user_id": user_id,
        "date_from": date_from,
        "date_to": date_to,
    }
    return service.list_orders(filters, page=page, limit=limit)


@router.get("/{order_id}")
def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return service.get_order(order_id)


@router.post("", status_code=201)
def create_order(payload: OrderCreate, service: OrderService = Depends(get_order_service)):
    return service.create_order(payload)


@router.post("/expire-reservations")
def expire_reservations(service: OrderService = Depends(get_order_service)):
    return {"cancelled": service.expire_reservations()}


@router.put("/{order_id}/status")
def update_order_status(
    order_id: str, payload: OrderStatusUpdate, service: OrderService = Depends(get_order_service)
):
    return service.update_order_status(order_id, payload.status, payload.tracking_number)


@router.put("/{order_id}/payment")
def update_payment_status(
    order_id: str, payload: PaymentStatusUpdate, service: OrderService = Depends(get_order_service)
):
    return service.update_payment_status(order_id, payload.status, payload.external_id)
