"""
OrderService - Order Placement & Fulfilment

Pricing rule, fixed when the order is placed and never recomputed:

    final_amount = total_amount - discount + logistics.price

Status and payment updates only touch their own fields.
"""
import os
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from database import naive_utc, paginate, to_object_id, utcnow
from errors import AdminError, InvalidTransitionError, NotFoundError, StoreError, ValidationError
from schemas import NotificationIn, OrderCreate
from services.base import DocumentService, store_call
from services.catalog import LOW_STOCK_THRESHOLD, ProductService
from services.notifications import NotificationService
from services.promotions import compute_discount, is_usable, normalize_code
from services.reports import SalesReportService

ORDER_RESERVATION_MINUTES = int(os.getenv("ORDER_RESERVATION_MINUTES", "30"))

# completed and cancelled are terminal
ORDER_TRANSITIONS = {
    "pending": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}
PAYMENT_STATUSES = {"pending", "paid", "failed"}


def can_transition(current: str, target: str) -> bool:
    # Re-sending the current status is how a tracking number gets attached
    return current == target or target in ORDER_TRANSITIONS.get(current, set())


def price_order(total_amount: float, discount: float, shipping: float) -> float:
    return round(total_amount - discount + shipping, 2)


class OrderService(DocumentService):
    collection_name = "orders"
    id_field = "order_id"
    label = "Order"

    def __init__(self, db):
        super().__init__(db)
        self.products = ProductService(db)
        self.notifications = NotificationService(db)
        self.reports = SalesReportService(db)

    @store_call("fetch orders")
    def list_orders(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        filters = filters or {}
        query: Dict[str, Any] = {}
        if filters.get("status"):
            query["status"] = filters["status"]
        if filters.get("payment_status"):
            query["payment.status"] = filters["payment_status"]
        if filters.get("user_id"):
            query["user_id"] = filters["user_id"]

        created: Dict[str, Any] = {}
        if filters.get("date_from"):
            created["$gte"] = naive_utc(filters["date_from"])
        if filters.get("date_to"):
            created["$lte"] = naive_utc(filters["date_to"])
        if created:
            query["created_at"] = created

        result = paginate(self.db, self.collection_name, query, page, limit, sort=[("created_at", DESCENDING)])
        result["data"] = [self._serialize(d) for d in result["data"]]
        return result

    @store_call("fetch order")
    def get_order(self, order_id: str) -> dict:
        return self._get(order_id)

    def _resolve_items(self, data: OrderCreate) -> Tuple[List[dict], List[Tuple[dict, Optional[str], int]]]:
        """Snapshot titles and prices and check stock for every line before anything is written."""
        items: List[dict] = []
        reservations: List[Tuple[dict, Optional[str], int]] = []
        products: Dict[str, dict] = {}
        requested: Dict[Tuple[str, Optional[str]], int] = {}

        for line in data.items:
            if line.product_id not in products:
                product = self.products.collection.find_one({"_id": to_object_id(line.product_id)})
                if not product:
                    raise NotFoundError(f"Product {line.product_id} not found")
                products[line.product_id] = product
            product = products[line.product_id]
            variants = product.get("variants") or {}

            key = (line.product_id, line.variant_id)
            requested[key] = requested.get(key, 0) + line.quantity

            if line.variant_id:
                variant = variants.get(line.variant_id)
                if variant is None:
                    raise NotFoundError(f"Variant {line.variant_id} not found")
                title = f"{product['title']} - {variant['name']}"
                price = float(variant.get("price", product.get("price", 0)))
                available = variant.get("stock", 0)
            else:
                if variants:
                    raise ValidationError(f"Choose a variant of '{product['title']}'")
                title = product["title"]
                price = float(product.get("price", 0))
                available = product.get("stock", 0)

            if requested[key] > available:
                raise ValidationError(f"Insufficient stock for '{title}'")

            item = {"product_id": line.product_id, "title": title, "quantity": line.quantity, "price": price}
            if line.variant_id:
                item["variant_id"] = line.variant_id
            items.append(item)
            reservations.append((product, line.variant_id, line.quantity))

        return items, reservations

    def _apply_voucher(self, code: Optional[str], total_amount: float) -> Tuple[Optional[dict], float]:
        if not code:
            return None, 0.0
        voucher = self.db["vouchers"].find_one({"code": normalize_code(code)})
        if not voucher:
            raise ValidationError("Invalid voucher code")
        if not is_usable(voucher):
            raise ValidationError("Voucher is inactive or has expired")
        if total_amount < voucher.get("min_purchase", 0):
            raise ValidationError(f"Minimum purchase of {voucher['min_purchase']} required for this voucher")
        return voucher, compute_discount(voucher, total_amount)

    def _release(self, reserved: List[Tuple[str, Optional[str], int]]) -> None:
        for product_id, variant_id, quantity in reserved:
            try:
                self.products.restock(product_id, variant_id, quantity)
            except StoreError:
                self.logger.error(f"Could not give back {quantity} units of product {product_id}")

    @store_call("create order")
    def create_order(self, data: OrderCreate) -> dict:
        """
        Price and place an order.

        Stock is reserved line by line before the order is written. If a line
        cannot be reserved, or the insert fails, the lines already reserved are
        given back and no order is left behind.
        """
        items, reservations = self._resolve_items(data)
        total_amount = round(sum(i["price"] * i["quantity"] for i in items), 2)
        voucher, discount = self._apply_voucher(data.voucher_code, total_amount)

        province = data.shipping_address.province_id
        rate = self.db["logistics"].find_one({"_id": province})
        if not rate:
            raise ValidationError(f"No shipping rate configured for province '{province}'")
        shipping = float(rate["price"])

        reserved: List[Tuple[str, Optional[str], int]] = []
        low_stock: List[str] = []
        try:
            for product, variant_id, quantity in reservations:
                new_stock = self.products.decrement_stock(product, variant_id, quantity)
                reserved.append((str(product["_id"]), variant_id, quantity))
                if new_stock < LOW_STOCK_THRESHOLD and product["title"] not in low_stock:
                    low_stock.append(product["title"])

            now = utcnow()
            created = self._create(
                {
                    "user_id": data.user_id,
                    "items": items,
                    "total_amount": total_amount,
                    "discount": discount,
                    "final_amount": price_order(total_amount, discount, shipping),
                    "voucher_id": str(voucher["_id"]) if voucher else None,
                    "payment": {"status": "pending", "method": data.payment_method},
                    "shipping_address": data.shipping_address.model_dump(),
                    "logistics": {"province_id": province, "price": shipping},
                    "status": "pending",
                    "reserved_until": now + timedelta(minutes=ORDER_RESERVATION_MINUTES),
                }
            )
        except (AdminError, PyMongoError):
            self._release(reserved)
            raise

        self.notifications.create_notification(
            NotificationIn(
                type="order",
                title="New order",
                message=f"Order {created['order_id']} placed for {created['final_amount']}",
            )
        )
        for title in low_stock:
            self.notifications.create_notification(
                NotificationIn(type="stock", title="Low stock", message=f"'{title}' is running low on stock")
            )
        return created

    def _restock_items(self, order: dict) -> None:
        for item in order.get("items", []):
            self.products.restock(item["product_id"], item.get("variant_id"), item["quantity"])

    @store_call("update order status")
    def update_order_status(self, order_id: str, status: str, tracking_number: Optional[str] = None) -> dict:
        """
        Move an order along pending -> processing -> shipped -> completed.

        Any non-terminal order may be cancelled, which gives its stock back. A
        tracking number is merged into the logistics sub-document without
        touching its other fields.
        """
        if status not in ORDER_TRANSITIONS:
            raise ValidationError(f"Unknown order status '{status}'")
        order = self._find_or_404(order_id)
        current = order.get("status", "pending")
        if not can_transition(current, status):
            raise InvalidTransitionError(current, status)

        changes: Dict[str, Any] = {"status": status, "updated_at": utcnow()}
        if tracking_number and tracking_number.strip():
            changes["logistics.tracking_number"] = tracking_number.strip()
        # Guarded on the status read above; a lost race changes nothing
        result = self.collection.update_one({"_id": order["_id"], "status": current}, {"$set": changes})
        if result.matched_count == 0:
            raise ValidationError(f"Order {order_id} was changed by another request, reload and retry")
        self.logger.info(f"Order {order_id}: {current} -> {status}")

        if status == "cancelled" and current != "cancelled":
            self._restock_items(order)
        if status == "completed" and current != "completed":
            self.reports.record_completed_order(order)
        return self._get(order_id)

    @store_call("expire order reservations")
    def expire_reservations(self, now: Optional[datetime] = None) -> List[str]:
        """Cancel unpaid pending orders whose stock hold has lapsed and give their stock back."""
        now = now or utcnow()
        expired = list(
            self.collection.find(
                {"status": "pending", "payment.status": {"$ne": "paid"}, "reserved_until": {"$lt": naive_utc(now)}}
            )
        )
        cancelled: List[str] = []
        for order in expired:
            result = self.collection.update_one(
                {"_id": order["_id"], "status": "pending"},
                {"$set": {"status": "cancelled", "updated_at": utcnow()}},
            )
            if result.matched_count:
                self._restock_items(order)
                cancelled.append(str(order["_id"]))

        if cancelled:
            self.logger.info(f"Expired {len(cancelled)} order reservations")
        return cancelled

    @store_call("update payment status")
    def update_payment_status(self, order_id: str, status: str, external_id: Optional[str] = None) -> dict:
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Unknown payment status '{status}'")
        order = self._find_or_404(order_id)
        previous = (order.get("payment") or {}).get("status")

        changes: Dict[str, Any] = {"payment.status": status, "updated_at": utcnow()}
        if external_id:
            changes["payment.external_id"] = external_id
        self.collection.update_one({"_id": order["_id"]}, {"$set": changes})

        if status == "paid" and previous != "paid":
            self.notifications.create_notification(
                NotificationIn(
                    type="payment",
                    title="Payment received",
                    message=f"Order {order_id} paid ({order.get('final_amount')})",
                )
            )
        return self._get(order_id)
