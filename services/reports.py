"""
Sales reports and dashboard statistics.

A sales report is written once per completed order and never changed.
"""
import csv
import io
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING

from database import create_document, naive_utc, to_object_id
from services.base import BaseService, store_call
from services.catalog import LOW_STOCK_THRESHOLD

REPORT_CSV_FIELDS = ["report_id", "order_id", "total_amount", "final_amount", "voucher_id", "created_at"]


class SalesReportService(BaseService):
    collection_name = "salesReports"
    id_field = "report_id"
    label = "Sales report"

    @store_call("record sales report")
    def record_completed_order(self, order: dict) -> dict:
        existing = self.collection.find_one({"order_id": str(order["_id"])})
        if existing:
            return self._serialize(existing)
        report = {
            "order_id": str(order["_id"]),
            "total_amount": order.get("total_amount", 0),
            "final_amount": order.get("final_amount", 0),
            "voucher_id": order.get("voucher_id"),
        }
        new_id = create_document(self.db, self.collection_name, report)
        self.logger.info(f"Recorded sales report {new_id} for order {report['order_id']}")
        return self._serialize(self.collection.find_one({"_id": to_object_id(new_id)}))

    @store_call("fetch sales reports")
    def list_sales_reports(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
    ) -> List[dict]:
        query: Dict[str, Any] = {}
        created: Dict[str, Any] = {}
        if date_from:
            created["$gte"] = naive_utc(date_from)
        if date_to:
            created["$lte"] = naive_utc(date_to)
        if created:
            query["created_at"] = created
        amount: Dict[str, Any] = {}
        if min_amount is not None:
            amount["$gte"] = min_amount
        if max_amount is not None:
            amount["$lte"] = max_amount
        if amount:
            query["final_amount"] = amount
        return self._list(query, sort=[("created_at", DESCENDING)])

    @staticmethod
    def summarize(reports: List[dict]) -> Dict[str, float]:
        if not reports:
            return {
                "total_revenue": 0,
                "total_orders": 0,
                "average_order_value": 0,
                "total_discount": 0,
                "discount_percentage": 0,
            }
        total_revenue = sum(r["final_amount"] for r in reports)
        total_original = sum(r["total_amount"] for r in reports)
        total_discount = total_original - total_revenue
        return {
            "total_revenue": total_revenue,
            "total_orders": len(reports),
            "average_order_value": total_revenue / len(reports),
            "total_discount": total_discount,
            "discount_percentage": (total_discount / total_original) * 100 if total_original > 0 else 0,
        }

    @staticmethod
    def export_csv(reports: List[dict]) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=REPORT_CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for report in reports:
            row = dict(report)
            if isinstance(row.get("created_at"), datetime):
                row["created_at"] = row["created_at"].isoformat()
            writer.writerow(row)
        return buffer.getvalue()


class StatsService(BaseService):
    @store_call("fetch marketplace stats")
    def marketplace_stats(self) -> Dict[str, Any]:
        orders = list(self.db["orders"].find({}, {"status": 1, "payment": 1, "final_amount": 1}))
        total_revenue = sum(
            o.get("final_amount") or 0 for o in orders if (o.get("payment") or {}).get("status") == "paid"
        )
        return {
            "total_products": self.db["products"].count_documents({}),
            "total_orders": len(orders),
            "total_revenue": total_revenue,
            "pending_orders": sum(1 for o in orders if o.get("status") == "pending"),
            "low_stock_products": self.db["products"].count_documents({"stock": {"$lt": LOW_STOCK_THRESHOLD}}),
            "active_vouchers": self.db["vouchers"].count_documents({"is_active": True}),
        }
