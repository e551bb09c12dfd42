from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import get_db
from schemas import TvCategoryIn, TvCategoryUpdate, TvContentIn, TvContentUpdate
from security import require_admin
from services.content import TvCategoryService, TvContentService

router = APIRouter(prefix="/tv/categories", dependencies=[Depends(require_admin)])


def get_category_service(db: Database = Depends(get_db)) -> TvCategoryService:
    return TvCategoryService(db)


def get_content_service(db: Database = Depends(get_db)) -> TvContentService:
    return TvContentService(db)


@router.get("")
def list_categories(service: TvCategoryService = Depends(get_category_service)):
    return {"items": service.list_categories()}


@router.get("/next-order")
def next_order(service: TvCategoryService = Depends(get_category_service)):
    return {"order": service.get_next_order()}


@router.get("/{category_id}")
def get_category(category_id: str, service: TvCategoryService = Depends(get_category_service)):
    return service.get_category(category_id)


@router.post("", status_code=201)
def create_category(payload: TvCategoryIn, service: TvCategoryService = Depends(get_category_service)):
    return service.create_category(payload)


@router.put("/{category_id}")
def update_category(
    category_id: str, payload: TvCategoryUpdate, service: TvCategoryService = Depends(get_category_service)
):
    return service.update_category(category_id, payload)


@router.delete("/{category_id}")
def delete_category(category_id: str, service: TvCategoryService = Depends(get_category_service)):
    removed = service.delete_category(category_id)
    return {"id": category_id, "deleted": True, "contents_deleted": removed}


# Contents
@router.get("/{category_id}/contents")
def list_contents(category_id: str, service: TvContentService = Depends(get_content_service)):
    return {"items": service.list_contents(category_id), "count": service.count_contents(category_id)}


@router.get("/{category_id}/contents/{content_id}")
def get_content(category_id: str, content_id: str, service: TvContentService = Depends(get_content_service)):
    return service.get_content(category_id, content_id)


@router.post("/{category_id}/contents", status_code=201)
def create_content(category_id: str, payload: TvContentIn, service: TvContentService = Depends(get_content_service)):
    return service.create_content(category_id, payload)


@router.put("/{category_id}/contents/{content_id}")
def update_content(
    category_id: str,
    content_id: str,
    payload: TvContentUpdate,
    service: TvContentService = Depends(get_content_service),
):
    return service.update_content(category_id, content_id, payload)


@router.delete("/{category_id}/contents/{content_id}")
def delete_content(category_id: str, content_id: str, service: TvContentService = Depends(get_content_service)):
    service.delete_content(category_id, content_id)
    return {"id": content_id, "deleted": True}
