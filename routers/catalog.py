from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import get_db
from schemas import CategoryIn, ImageRemoval, ProductCreate, ProductUpdate, StockUpdate
from security import require_admin
from services.catalog import CategoryService, ProductService
from services.uploads import ImageStore

router = APIRouter(dependencies=[Depends(require_admin)])


def get_product_service(db: Database = Depends(get_db)) -> ProductService:
    return ProductService(db, images=ImageStore(db))


def get_category_service(db: Database = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


# Products
@router.get("/products")
def list_products(
    category_id: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    in_stock: bool = False,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    service: ProductService = Depends(get_product_service),
):
    filters = {
        "category_id": category_id,
        "min_price": min_price,
        "max_price": max_price,
        "in_stock": in_stock,
        "search": search,
    }
    return service.list_products(filters, page=page, limit=limit)


@router.get("/products/{product_id}")
def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
    return service.get_product(product_id)


@router.post("/products", status_code=201)
def create_product(payload: ProductCreate, service: ProductService = Depends(get_product_service)):
    return service.create_product(payload)


@router.put("/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, service: ProductService = Depends(get_product_service)):
    return service.update_product(product_id, payload)


@router.put("/products/{product_id}/stock")
def update_stock(product_id: str, payload: StockUpdate, service: ProductService = Depends(get_product_service)):
    return service.update_stock(product_id, payload.stock)


@router.put("/products/{product_id}/variants/{variant_id}/stock")
def update_variant_stock(
    product_id: str, variant_id: str, payload: StockUpdate, service: ProductService = Depends(get_product_service)
):
    return service.update_variant_stock(product_id, variant_id, payload.stock)


@router.post("/products/{product_id}/images/remove")
def remove_product_image(
    product_id: str, payload: ImageRemoval, service: ProductService = Depends(get_product_service)
):
    return service.remove_product_image(product_id, payload.url)


@router.delete("/products/{product_id}")
def delete_product(product_id: str, service: ProductService = Depends(get_product_service)):
    service.delete_product(product_id)
    return {"product_id": product_id, "deleted": True}


# Categories
@router.get("/categories")
def list_categories(service: CategoryService = Depends(get_category_service)):
    return {"items": service.list_categories()}


@router.get("/categories/{category_id}")
def get_category(category_id: str, service: CategoryService = Depends(get_category_service)):
    return service.get_category(category_id)


@router.post("/categories", status_code=201)
def create_category(payload: CategoryIn, service: CategoryService = Depends(get_category_service)):
    return service.create_category(payload)


@router.put("/categories/{category_id}")
def update_category(category_id: str, payload: CategoryIn, service: CategoryService = Depends(get_category_service)):
    return service.update_category(category_id, payload)


@router.delete("/categories/{category_id}")
def delete_category(category_id: str, service: CategoryService = Depends(get_category_service)):
    service.delete_category(category_id)
    return {"category_id": category_id, "deleted": True}
