import csv
import io
from datetime import timedelta

import pytest
from bson import ObjectId

from database import utcnow
from services.reports import SalesReportService, StatsService


@pytest.mark.unit
class TestSalesReportService:
    @pytest.fixture(autouse=True)
    def setup(self, db):
        self.db = db
        self.service = SalesReportService(db)

    def completed_order(self, total, final, voucher_id=None):
        return {"_id": ObjectId(), "total_amount": total, "final_amount": final, "voucher_id": voucher_id}

    def test_record_is_idempotent_per_order(self):
        order = self.completed_order(100000, 95000, "v1")

        first = self.service.record_completed_order(order)
        second = self.service.record_completed_order(order)

        assert first["report_id"] == second["report_id"]
        assert first["order_id"] == str(order["_id"])
        assert self.db["salesReports"].count_documents({}) == 1

    def test_amount_and_date_filters(self):
        for total, final in ((100000, 90000), (200000, 200000), (50000, 45000)):
            self.service.record_completed_order(self.completed_order(total, final))

        assert len(self.service.list_sales_reports(min_amount=50000, max_amount=100000)) == 1
        assert len(self.service.list_sales_reports(date_from=utcnow() - timedelta(hours=1))) == 3
        assert self.service.list_sales_reports(date_to=utcnow() - timedelta(hours=1)) == []

    def test_summarize(self):
        summary = SalesReportService.summarize(
            [{"total_amount": 100000, "final_amount": 90000}, {"total_amount": 100000, "final_amount": 70000}]
        )

        assert summary == {
            "total_revenue": 160000,
            "total_orders": 2,
            "average_order_value": 80000,
            "total_discount": 40000,
            "discount_percentage": 20,
        }

    def test_summarize_empty(self):
        assert SalesReportService.summarize([])["total_orders"] == 0

    def test_export_csv(self):
        self.service.record_completed_order(self.completed_order(100000, 90000, "v1"))

        rows = list(csv.DictReader(io.StringIO(SalesReportService.export_csv(self.service.list_sales_reports()))))

        assert len(rows) == 1
        assert rows[0]["final_amount"] == "90000"
        assert rows[0]["voucher_id"] == "v1"
        assert set(rows[0]) == {"report_id", "order_id", "total_amount", "final_amount", "voucher_id", "created_at"}


@pytest.mark.unit
def test_marketplace_stats(db):
    db["products"].insert_many([{"title": "A", "stock": 3}, {"title": "B", "stock": 40}])
    db["orders"].insert_many(
        [
            {"status": "pending", "payment": {"status": "pending"}, "final_amount": 1000},
            {"status": "completed", "payment": {"status": "paid"}, "final_amount": 2500},
        ]
    )
    db["vouchers"].insert_many([{"code": "A1B", "is_active": True}, {"code": "C2D", "is_active": False}])

    stats = StatsService(db).marketplace_stats()

    assert stats == {
        "total_products": 2,
        "total_orders": 2,
        "total_revenue": 2500,
        "pending_orders": 1,
        "low_stock_products": 1,
        "active_vouchers": 1,
    }
