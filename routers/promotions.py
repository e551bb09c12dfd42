from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import get_db
from schemas import LogisticsRateIn, VoucherIn, VoucherUpdate
from security import require_admin
from services.promotions import LogisticsService, VoucherService, is_usable

router = APIRouter(dependencies=[Depends(require_admin)])


def get_voucher_service(db: Database = Depends(get_db)) -> VoucherService:
    return VoucherService(db)


def get_logistics_service(db: Database = Depends(get_db)) -> LogisticsService:
    return LogisticsService(db)


def with_usable(voucher: dict) -> dict:
    return {**voucher, "usable": is_usable(voucher)}


# Vouchers
@router.get("/vouchers")
def list_vouchers(service: VoucherService = Depends(get_voucher_service)):
    return {"items": [with_usable(v) for v in service.list_vouchers()]}


@router.get("/vouchers/code/{code}")
def get_voucher_by_code(code: str, service: VoucherService = Depends(get_voucher_service)):
    return with_usable(service.get_voucher_by_code(code))


@router.get("/vouchers/{voucher_id}")
def get_voucher(voucher_id: str, service: VoucherService = Depends(get_voucher_service)):
    return with_usable(service.get_voucher(voucher_id))


@router.post("/vouchers", status_code=201)
def create_voucher(payload: VoucherIn, service: VoucherService = Depends(get_voucher_service)):
    return service.create_voucher(payload)


@router.put("/vouchers/{voucher_id}")
def update_voucher(voucher_id: str, payload: VoucherUpdate, service: VoucherService = Depends(get_voucher_service)):
    return service.update_voucher(voucher_id, payload)


@router.post("/vouchers/{voucher_id}/toggle")
def toggle_voucher(voucher_id: str, service: VoucherService = Depends(get_voucher_service)):
    return service.toggle_voucher(voucher_id)


@router.delete("/vouchers/{voucher_id}")
def delete_voucher(voucher_id: str, service: VoucherService = Depends(get_voucher_service)):
    service.delete_voucher(voucher_id)
    return {"voucher_id": voucher_id, "deleted": True}


# Logistics
@router.get("/logistics")
def list_rates(service: LogisticsService = Depends(get_logistics_service)):
    return {"items": service.list_rates()}


@router.get("/logistics/provinces")
def available_provinces(editing: Optional[str] = None, service: LogisticsService = Depends(get_logistics_service)):
    return {"items": service.available_provinces(editing)}


@router.get("/logistics/{province_id}")
def get_rate(province_id: str, service: LogisticsService = Depends(get_logistics_service)):
    return service.get_rate(province_id)


@router.post("/logistics", status_code=201)
def create_rate(payload: LogisticsRateIn, service: LogisticsService = Depends(get_logistics_service)):
    return service.save_rate(payload)


@router.put("/logistics/{province_id}")
def update_rate(
    province_id: str, payload: LogisticsRateIn, service: LogisticsService = Depends(get_logistics_service)
):
    return service.save_rate(payload, editing_province_id=province_id)


@router.delete("/logistics/{province_id}")
def delete_rate(province_id: str, service: LogisticsService = Depends(get_logistics_service)):
    service.delete_rate(province_id)
    return {"province_id": province_id, "deleted": True}
