"""
CatalogService - Products & Categories

Handles product CRUD, variant stock bookkeeping and category CRUD.

Stock rule: a product with variants always stores `stock` as the sum of its
variant stocks. A product without variants keeps the stock it was given.
"""
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from database import paginate, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from schemas import CategoryIn, ProductCreate, ProductUpdate, VariantIn
from services.base import DocumentService, store_call

LOW_STOCK_THRESHOLD = 10


def aggregate_stock(variants: Dict[str, dict]) -> int:
    return sum(int(v.get("stock", 0)) for v in variants.values())


def build_variants(variants: List[VariantIn]) -> Dict[str, dict]:
    """Key each submitted variant under a generated id and check its SKU and stock."""
    built: Dict[str, dict] = {}
    seen_skus = set()
    for variant in variants:
        sku = variant.sku.strip()
        if not variant.name.strip():
            raise ValidationError("Variant name is required")
        if not sku:
            raise ValidationError("Variant SKU is required")
        if sku in seen_skus:
            raise ValidationError(f"Duplicate variant SKU '{sku}'")
        if variant.stock < 0:
            raise ValidationError("Variant stock cannot be negative")
        seen_skus.add(sku)
        variant_id = f"variant_{ObjectId()}"
        built[variant_id] = {
            "variant_id": variant_id,
            "name": variant.name.strip(),
            "sku": sku,
            "price": variant.price,
            "stock": variant.stock,
        }
    return built


class ProductService(DocumentService):
    """
    Service for the product catalog.

    Args:
        db: Database handle
        images: Optional image store used for best-effort file cleanup when an
            image is removed from a product
    """

    collection_name = "products"
    id_field = "product_id"
    label = "Product"

    def __init__(self, db, images=None):
        super().__init__(db)
        self.images = images

    @store_call("fetch products")
    def list_products(
        self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        """
        List products matching every filter, one page at a time.

        Filters: category_id, min_price, max_price, in_stock, search. Search is
        a case-insensitive substring match on title or description and runs in
        the same query as the other filters, so total/total_pages always
        describe the filtered set.
        """
        filters = filters or {}
        query: Dict[str, Any] = {}

        if filters.get("category_id"):
            query["category_id"] = filters["category_id"]

        price: Dict[str, float] = {}
        if filters.get("min_price") is not None:
            price["$gte"] = filters["min_price"]
        if filters.get("max_price") is not None:
            price["$lte"] = filters["max_price"]
        if price:
            query["price"] = price

        if filters.get("in_stock"):
            query["stock"] = {"$gt": 0}

        search = (filters.get("search") or "").strip()
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"description": pattern}]

        result = paginate(self.db, self.collection_name, query, page, limit, sort=[("created_at", DESCENDING)])
        result["data"] = [self._serialize(d) for d in result["data"]]
        self.logger.info(f"Listed products: total={result['total']}, page={result['page']}/{result['total_pages']}")
        return result

    @store_call("fetch product")
    def get_product(self, product_id: str) -> dict:
        return self._get(product_id)

    @store_call("create product")
    def create_product(self, data: ProductCreate) -> dict:
        if not data.title.strip():
            raise ValidationError("Product title is required")

        if data.variants:
            variants = build_variants(data.variants)
            stock = aggregate_stock(variants)
        else:
            if data.stock < 0:
                raise ValidationError("Stock cannot be negative")
            variants = {}
            stock = data.stock

        doc = data.model_dump(exclude={"variants", "stock"})
        doc.update({"title": data.title.strip(), "stock": stock, "variants": variants})
        return self._create(doc)

    @store_call("update product")
    def update_product(self, product_id: str, data: ProductUpdate) -> dict:
        changes = data.model_dump(exclude_unset=True, exclude={"variants"})
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("Product title is required")
        if data.variants is not None:
            variants = build_variants(data.variants)
            changes["variants"] = variants
            if variants:
                changes["stock"] = aggregate_stock(variants)
        return self._update(product_id, changes)

    @store_call("update stock")
    def update_stock(self, product_id: str, stock: int) -> dict:
        product = self._find_or_404(product_id)
        if product.get("variants"):
            raise ValidationError("Product has variants; adjust variant stock instead")
        if stock < 0:
            raise ValidationError("Stock cannot be negative")
        return self._update(product_id, {"stock": stock})

    @store_call("update variant stock")
    def update_variant_stock(self, product_id: str, variant_id: str, stock: int) -> dict:
        if stock < 0:
            raise ValidationError("Variant stock cannot be negative")
        product = self._find_or_404(product_id)
        variants = product.get("variants") or {}
        if variant_id not in variants:
            raise NotFoundError("Variant not found")
        variants[variant_id]["stock"] = stock
        return self._update(
            product_id,
            {f"variants.{variant_id}.stock": stock, "stock": aggregate_stock(variants)},
        )

    @store_call("reserve stock")
    def decrement_stock(self, product: dict, variant_id: Optional[str], quantity: int) -> int:
        """
        Take `quantity` units off a product (and its variant) and return the new aggregate stock.

        The stock check and the decrement are one conditional `$inc`, so two
        orders racing for the last units cannot both succeed.
        """
        variants = product.get("variants") or {}
        query: Dict[str, Any] = {"_id": product["_id"]}
        inc: Dict[str, int] = {"stock": -quantity}
        if variant_id:
            variant = variants.get(variant_id)
            if variant is None:
                raise NotFoundError("Variant not found")
            label = f"{product.get('title')} - {variant.get('name')}"
            query[f"variants.{variant_id}.stock"] = {"$gte": quantity}
            inc[f"variants.{variant_id}.stock"] = -quantity
        else:
            if variants:
                raise ValidationError(f"Choose a variant of '{product.get('title')}'")
            label = product.get("title")
            query["stock"] = {"$gte": quantity}

        updated = self.collection.find_one_and_update(
            query,
            {"$inc": inc, "$set": {"updated_at": utcnow()}},
            projection={"stock": 1},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise ValidationError(f"Insufficient stock for '{label}'")
        return updated["stock"]

    @store_call("restock")
    def restock(self, product_id: str, variant_id: Optional[str], quantity: int) -> None:
        """Give back units taken by `decrement_stock`."""
        inc: Dict[str, int] = {"stock": quantity}
        if variant_id:
            inc[f"variants.{variant_id}.stock"] = quantity
        result = self.collection.update_one(
            {"_id": to_object_id(product_id)}, {"$inc": inc, "$set": {"updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            self.logger.warning(f"Could not restock {quantity} of missing product {product_id}")

    @store_call("remove product image")
    def remove_product_image(self, product_id: str, url: str) -> dict:
        self._find_or_404(product_id)
        self.collection.update_one(
            {"_id": to_object_id(product_id)},
            {"$pull": {"images": url}, "$set": {"updated_at": utcnow()}},
        )
        if self.images is not None:
            # Best-effort
            try:
                self.images.delete_by_url(url)
            except Exception as e:
                self.logger.warning(f"Could not delete image file {url}: {e}")
        return self._get(product_id)

    @store_call("delete product")
    def delete_product(self, product_id: str) -> None:
        self._delete(product_id)


class CategoryService(DocumentService):
    collection_name = "categories"
    id_field = "category_id"
    label = "Category"

    @store_call("fetch categories")
    def list_categories(self) -> List[dict]:
        return self._list(sort=self.default_sort)

    @store_call("fetch category")
    def get_category(self, category_id: str) -> dict:
        return self._get(category_id)

    @store_call("create category")
    def create_category(self, data: CategoryIn) -> dict:
        title = data.title.strip()
        if not title:
            raise ValidationError("Category title is required")
        return self._create({"title": title})

    @store_call("update category")
    def update_category(self, category_id: str, data: CategoryIn) -> dict:
        title = data.title.strip()
        if not title:
            raise ValidationError("Category title is required")
        return self._update(category_id, {"title": title})

    @store_call("delete category")
    def delete_category(self, category_id: str) -> None:
        # Products keep their category_id; the reference is soft
        self._delete(category_id)
