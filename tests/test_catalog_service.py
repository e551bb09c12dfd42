from unittest.mock import Mock

import pytest
from mongomock import Collection
from pymongo.errors import ServerSelectionTimeoutError

from errors import NotFoundError, StoreError, ValidationError
from schemas import CategoryIn, ProductCreate, ProductUpdate, VariantIn
from services.catalog import CategoryService, ProductService


def make_product(service, **overrides):
    data = {"title": "Jersey", "description": "Home kit", "price": 1000, "category_id": "cat-1"}
    data.update(overrides)
    return service.create_product(ProductCreate(**data))


@pytest.mark.unit
class TestProductService:
    @pytest.fixture(autouse=True)
    def setup(self, db):
        self.images = Mock()
        self.service = ProductService(db, images=self.images)

    def test_stock_is_sum_of_variant_stocks(self):
        product = make_product(
            self.service,
            variants=[
                VariantIn(name="Red", sku="A1", price=1000, stock=5),
                VariantIn(name="Blue", sku="A2", price=1000, stock=3),
            ],
        )

        assert product["stock"] == 8
        assert len(product["variants"]) == 2
        for key, variant in product["variants"].items():
            assert key == variant["variant_id"]
            assert key.startswith("variant_")

    def test_without_variants_stock_comes_from_stock_field_not_price(self):
        product = make_product(self.service, price=25000, stock=4)

        assert product["stock"] == 4
        assert product["variants"] == {}

    def test_duplicate_sku_rejected_before_write(self, db):
        with pytest.raises(ValidationError):
            make_product(
                self.service,
                variants=[
                    VariantIn(name="Red", sku="A1", price=1000, stock=5),
                    VariantIn(name="Blue", sku="A1", price=1000, stock=3),
                ],
            )
        assert db["products"].count_documents({}) == 0

    def test_negative_variant_stock_rejected(self):
        with pytest.raises(ValidationError):
            make_product(self.service, variants=[VariantIn(name="Red", sku="A1", price=1000, stock=-1)])

    def test_update_with_variants_recomputes_stock(self):
        product = make_product(self.service, stock=2)

        updated = self.service.update_product(
            product["product_id"],
            ProductUpdate(variants=[VariantIn(name="S", sku="S1", price=900, stock=7)]),
        )

        assert updated["stock"] == 7

    def test_update_variant_stock_keeps_aggregate_in_sync(self):
        product = make_product(
            self.service,
            variants=[
                VariantIn(name="Red", sku="A1", price=1000, stock=5),
                VariantIn(name="Blue", sku="A2", price=1000, stock=3),
            ],
        )
        variant_id = next(iter(product["variants"]))

        updated = self.service.update_variant_stock(product["product_id"], variant_id, 10)

        assert updated["variants"][variant_id]["stock"] == 10
        assert updated["stock"] == 13

    def test_update_stock_refused_for_products_with_variants(self):
        product = make_product(self.service, variants=[VariantIn(name="Red", sku="A1", price=1000, stock=5)])

        with pytest.raises(ValidationError):
            self.service.update_stock(product["product_id"], 99)

    def test_list_products_filters_and_paginates_on_filtered_set(self):
        for i in range(5):
            make_product(self.service, title=f"Running shoe {i}", price=100 * (i + 1), stock=i)
        make_product(self.service, title="Cap", description="plain", price=50, stock=3)

        page = self.service.list_products({"search": "RUNNING", "in_stock": True}, page=1, limit=2)

        # shoe 0 has no stock
        assert page["total"] == 4
        assert page["total_pages"] == 2
        assert len(page["data"]) == 2
        assert all("Running" in p["title"] for p in page["data"])

    def test_list_products_price_range(self):
        make_product(self.service, title="Cheap", price=10)
        make_product(self.service, title="Mid", price=50)
        make_product(self.service, title="Dear", price=500)

        page = self.service.list_products({"min_price": 20, "max_price": 100})

        assert [p["title"] for p in page["data"]] == ["Mid"]

    def test_search_is_literal_not_regex(self):
        make_product(self.service, title="Ball (size 5)")

        page = self.service.list_products({"search": "(size"})

        assert page["total"] == 1

    def test_decrement_checks_stock_in_the_store_not_the_caller_copy(self, db):
        product = make_product(self.service, stock=20)
        stale = db["products"].find_one({"title": "Jersey"})

        assert self.service.decrement_stock(stale, None, 15) == 5
        with pytest.raises(ValidationError, match="Insufficient stock"):
            self.service.decrement_stock(stale, None, 15)

        assert self.service.get_product(product["product_id"])["stock"] == 5

    def test_decrement_and_restock_variant(self, db):
        product = make_product(
            self.service,
            variants=[
                VariantIn(name="Red", sku="A1", price=1000, stock=5),
                VariantIn(name="Blue", sku="A2", price=1000, stock=3),
            ],
        )
        red = next(iter(product["variants"]))
        stored = db["products"].find_one({"title": "Jersey"})

        assert self.service.decrement_stock(stored, red, 4) == 4
        with pytest.raises(ValidationError):
            self.service.decrement_stock(stored, red, 2)
        self.service.restock(product["product_id"], red, 4)

        restored = self.service.get_product(product["product_id"])
        assert restored["variants"][red]["stock"] == 5
        assert restored["stock"] == 8

    def test_remove_image_deletes_file_best_effort(self):
        product = make_product(self.service, images=["/uploads/a", "/uploads/b"])
        self.images.delete_by_url.side_effect = RuntimeError("storage down")

        updated = self.service.remove_product_image(product["product_id"], "/uploads/a")

        assert updated["images"] == ["/uploads/b"]
        self.images.delete_by_url.assert_called_once_with("/uploads/a")

    def test_delete_missing_product(self):
        with pytest.raises(NotFoundError):
            self.service.delete_product("64b7f0000000000000000000")

    def test_store_failure_surfaces_as_store_error(self, monkeypatch):
        monkeypatch.setattr(Collection, "count_documents", Mock(side_effect=ServerSelectionTimeoutError("down")))

        with pytest.raises(StoreError, match="Failed to fetch products"):
            self.service.list_products()


@pytest.mark.unit
class TestCategoryService:
    @pytest.fixture(autouse=True)
    def setup(self, db):
        self.service = CategoryService(db)
        self.products = ProductService(db)

    def test_create_trims_title(self):
        category = self.service.create_category(CategoryIn(title="  Apparel "))

        assert category["title"] == "Apparel"
        assert "category_id" in category

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            self.service.create_category(CategoryIn(title="   "))

    def test_delete_leaves_products_referencing_it(self):
        category = self.service.create_category(CategoryIn(title="Apparel"))
        product = make_product(self.products, category_id=category["category_id"])

        self.service.delete_category(category["category_id"])

        assert self.products.get_product(product["product_id"])["category_id"] == category["category_id"]
        assert self.service.list_categories() == []
