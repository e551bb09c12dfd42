from unittest.mock import patch

import pytest
from mongomock import Collection
from pymongo.errors import ServerSelectionTimeoutError

from security import create_token, hash_password


@pytest.mark.integration
class TestAuth:
    def test_health(self, client):
        assert client.get("/").status_code == 200

    def test_requests_without_token_are_rejected(self, client):
        response = client.get("/products")

        assert response.status_code in (401, 403)

    def test_garbage_token(self, client):
        response = client.get("/products", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_non_admin_is_forbidden(self, client, db):
        user = {"email": "shopper@example.com", "role": "user", "hashed_password": hash_password("pw")}
        user["_id"] = db["users"].insert_one(user).inserted_id

        response = client.get("/products", headers={"Authorization": f"Bearer {create_token(user)}"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Admin only"

    def test_login_and_me(self, client, admin_user):
        response = client.post("/auth/login", json={"email": "admin@example.com", "password": "secret123"})
        assert response.status_code == 200
        token = response.json()["token"]

        me = client.get("/me", headers={"Authorization": f"Bearer {token}"}).json()
        assert me["role"] == "admin"

    def test_login_wrong_password(self, client, admin_user):
        response = client.post("/auth/login", json={"email": "admin@example.com", "password": "nope"})

        assert response.status_code == 401

    def test_image_download_needs_no_token(self, client):
        response = client.get("/uploads/not-an-id")

        assert response.status_code == 404
        assert response.json() == {"detail": "Image not found"}

    def test_image_upload_needs_admin(self, client):
        response = client.post("/uploads", json={"file_name": "a.png", "content": "aGk=", "content_type": "image/png"})

        assert response.status_code in (401, 403)


@pytest.mark.integration
class TestAdminRoutes:
    @pytest.fixture(autouse=True)
    def setup(self, client, admin_headers):
        self.client = client
        self.headers = admin_headers

    def post(self, path, body):
        return self.client.post(path, json=body, headers=self.headers)

    def put(self, path, body):
        return self.client.put(path, json=body, headers=self.headers)

    def get(self, path, **params):
        return self.client.get(path, params=params, headers=self.headers)

    def test_create_and_search_products(self):
        response = self.post(
            "/products",
            {
                "title": "Jersey",
                "description": "Home kit",
                "price": 120000,
                "category_id": "cat-1",
                "variants": [
                    {"name": "M", "sku": "J-M", "price": 120000, "stock": 5},
                    {"name": "L", "sku": "J-L", "price": 120000, "stock": 3},
                ],
            },
        )
        assert response.status_code == 201
        assert response.json()["stock"] == 8

        page = self.get("/products", search="jersey").json()
        assert page["total"] == 1
        assert page["total_pages"] == 1

    def test_validation_error_is_400(self):
        response = self.post(
            "/vouchers",
            {"code": "BIG", "type": "percentage", "value": 150, "valid_until": "2999-01-01T00:00:00Z"},
        )

        assert response.status_code == 400
        assert "cannot exceed 100%" in response.json()["detail"]

    def test_voucher_response_flags_usable(self):
        created = self.post(
            "/vouchers", {"code": "save10", "type": "percentage", "value": 10, "valid_until": "2999-01-01T00:00:00Z"}
        ).json()

        voucher = self.get(f"/vouchers/{created['voucher_id']}").json()

        assert voucher["code"] == "SAVE10"
        assert voucher["usable"] is True

    def test_missing_resource_is_404(self):
        response = self.get("/products/64b7f0000000000000000000")

        assert response.status_code == 404
        assert response.json() == {"detail": "Product not found"}

    def test_store_failure_is_502(self):
        with patch.object(Collection, "count_documents", side_effect=ServerSelectionTimeoutError("down")):
            response = self.get("/products")

        assert response.status_code == 502
        assert response.json() == {"detail": "Failed to fetch products"}

    def test_order_flow(self):
        assert self.post("/logistics", {"name": "Bali", "price": 20000}).status_code == 201
        product = self.post("/products", {"title": "Cap", "price": 50000, "category_id": "c", "stock": 10}).json()
        order = self.post(
            "/orders",
            {
                "user_id": "user-1",
                "items": [{"product_id": product["product_id"], "quantity": 2}],
                "shipping_address": {
                    "province_id": "bali",
                    "province_name": "Bali",
                    "full_address": "Jl. Sunset 1",
                    "postal_code": "80361",
                },
                "payment_method": "bank_transfer",
            },
        ).json()
        assert order["final_amount"] == 120000

        path = f"/orders/{order['order_id']}/status"
        assert self.put(path, {"status": "shipped"}).status_code == 400
        for status in ("processing", "shipped"):
            assert self.put(path, {"status": status}).status_code == 200

        done = self.put(path, {"status": "completed", "tracking_number": "JNE123"}).json()
        assert done["logistics"]["tracking_number"] == "JNE123"
        assert done["final_amount"] == order["final_amount"]

        reports = self.get("/reports").json()
        assert reports["stats"]["total_orders"] == 1
        export = self.get("/reports/export")
        assert export.headers["content-type"].startswith("text/csv")
        assert order["order_id"] in export.text

    def test_tv_category_delete_cascades(self):
        assert self.get("/tv/categories/next-order").json() == {"order": 1}
        category = self.post("/tv/categories", {"title": "Movies", "order": 1}).json()
        for i in range(3):
            self.post(f"/tv/categories/{category['id']}/contents", {"title": f"Ep {i}", "image": "/i", "link": "/l"})

        response = self.client.delete(f"/tv/categories/{category['id']}", headers=self.headers)

        assert response.json()["contents_deleted"] == 3
        assert self.get(f"/tv/categories/{category['id']}/contents").json() == {"items": [], "count": 0}

    def test_mark_all_notifications(self):
        for i in range(2):
            self.post("/notifications", {"type": "stock", "title": "Low stock", "message": f"Item {i}"})

        assert len(self.post("/notifications/read-all", {}).json()["marked"]) == 2
        assert self.get("/notifications").json()["unread"] == 0

    def test_fantasy_records_admin_as_creator(self, admin_user):
        created = self.post(
            "/fantasies",
            {
                "title": "Night Run",
                "address": "Jl. Raya Kuta",
                "schedule": "2999-06-01T19:00:00Z",
                "venue": "Kuta Beach",
                "registration_fee": 150000,
            },
        ).json()

        assert created["created_by"] == str(admin_user["_id"])
