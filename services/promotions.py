"""
Promotions - Vouchers & Logistics Rates

Voucher rules are checked in a fixed order and only the first failure is
reported.
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING

from database import as_utc, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from provinces import INDONESIAN_PROVINCES, province_id
from schemas import LogisticsRateIn, VoucherIn, VoucherUpdate
from services.base import BaseService, DocumentService, store_call

VOUCHER_CODE_RE = re.compile(r"^[A-Z0-9]+$")


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def validate_voucher(voucher: Dict[str, Any], now: Optional[datetime] = None) -> None:
    """Raise ValidationError for the first rule the voucher breaks."""
    now = now or utcnow()
    code = normalize_code(voucher.get("code"))
    value = voucher.get("value") or 0
    min_purchase = voucher.get("min_purchase") or 0
    valid_until = voucher.get("valid_until")

    if not code:
        raise ValidationError("Voucher code is required")
    if len(code) < 3:
        raise ValidationError("Voucher code must be at least 3 characters")
    if not VOUCHER_CODE_RE.match(code):
        raise ValidationError("Voucher code must contain only uppercase letters and numbers")
    if value <= 0:
        raise ValidationError("Discount value must be greater than 0")
    if voucher.get("type") == "percentage" and value > 100:
        raise ValidationError("Percentage discount cannot exceed 100%")
    if min_purchase < 0:
        raise ValidationError("Minimum purchase cannot be negative")
    if not valid_until:
        raise ValidationError("Valid until date is required")
    if as_utc(valid_until) <= now:
        raise ValidationError("Valid until date must be in the future")


def is_usable(voucher: dict, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    valid_until = as_utc(voucher.get("valid_until"))
    return bool(voucher.get("is_active")) and valid_until is not None and valid_until > now


def compute_discount(voucher: dict, total_amount: float) -> float:
    """Percentage or flat discount, never more than the order total."""
    if voucher.get("type") == "percentage":
        discount = total_amount * voucher["value"] / 100
    else:
        discount = voucher["value"]
    return round(min(discount, total_amount), 2)


class VoucherService(DocumentService):
    collection_name = "vouchers"
    id_field = "voucher_id"
    label = "Voucher"

    def _check_code_free(self, code: str, voucher_id: Optional[str] = None) -> None:
        query: Dict[str, Any] = {"code": code}
        if voucher_id:
            query["_id"] = {"$ne": to_object_id(voucher_id)}
        if self.collection.find_one(query):
            raise ValidationError(f"Voucher code '{code}' already exists")

    @store_call("fetch vouchers")
    def list_vouchers(self) -> List[dict]:
        return self._list(sort=self.default_sort)

    @store_call("fetch voucher")
    def get_voucher(self, voucher_id: str) -> dict:
        return self._get(voucher_id)

    @store_call("fetch voucher")
    def get_voucher_by_code(self, code: str) -> dict:
        doc = self.collection.find_one({"code": normalize_code(code)})
        if not doc:
            raise NotFoundError("Voucher not found")
        return self._serialize(doc)

    @store_call("create voucher")
    def create_voucher(self, data: VoucherIn) -> dict:
        voucher = data.model_dump()
        validate_voucher(voucher)
        voucher["code"] = normalize_code(voucher["code"])
        self._check_code_free(voucher["code"])
        return self._create(voucher)

    @store_call("update voucher")
    def update_voucher(self, voucher_id: str, data: VoucherUpdate) -> dict:
        current = self._find_or_404(voucher_id)
        changes = data.model_dump(exclude_unset=True)
        merged = {**current, **changes}
        validate_voucher(merged)
        if "code" in changes:
            changes["code"] = normalize_code(changes["code"])
            self._check_code_free(changes["code"], voucher_id)
        return self._update(voucher_id, changes)

    @store_call("update voucher status")
    def toggle_voucher(self, voucher_id: str) -> dict:
        current = self._find_or_404(voucher_id)
        return self._update(voucher_id, {"is_active": not current.get("is_active", False)})

    @store_call("delete voucher")
    def delete_voucher(self, voucher_id: str) -> None:
        self._delete(voucher_id)


class LogisticsService(BaseService):
    """Shipping cost per province, keyed by the province slug."""

    collection_name = "logistics"
    id_field = "province_id"
    label = "Logistics rate"

    @store_call("fetch logistics rates")
    def list_rates(self) -> List[dict]:
        return self._list(sort=[("name", ASCENDING)])

    @store_call("fetch logistics rate")
    def get_rate(self, rate_id: str) -> dict:
        return self._serialize(self._find_or_404(rate_id))

    @store_call("save logistics rate")
    def save_rate(self, data: LogisticsRateIn, editing_province_id: Optional[str] = None) -> dict:
        """
        Create a rate, or update the one at `editing_province_id`.

        A rate for the same province name (case-insensitive) blocks the save
        unless it is the very record being edited.
        """
        name = data.name.strip()
        if not name:
            raise ValidationError("Province name is required")
        if name not in INDONESIAN_PROVINCES:
            raise ValidationError("Please select a valid Indonesian province")
        if data.price < 0:
            raise ValidationError("Shipping price cannot be negative")
        if data.price == 0:
            raise ValidationError("Shipping price must be greater than 0")

        if editing_province_id is not None:
            self._find_or_404(editing_province_id)

        for existing in self.collection.find({}):
            if existing.get("name", "").lower() == name.lower() and existing["_id"] != editing_province_id:
                raise ValidationError("Logistics configuration for this province already exists")

        target_id = editing_province_id or province_id(name)
        self.collection.update_one(
            {"_id": target_id},
            {"$set": {"name": name, "price": data.price, "updated_at": utcnow()}},
            upsert=True,
        )
        self.logger.info(f"Saved logistics rate {target_id}: {data.price}")
        return self.get_rate(target_id)

    @store_call("delete logistics rate")
    def delete_rate(self, rate_id: str) -> None:
        result = self.collection.delete_one({"_id": rate_id})
        if result.deleted_count == 0:
            raise NotFoundError(f"{self.label} not found")

    @store_call("fetch logistics rates")
    def available_provinces(self, editing_province_id: Optional[str] = None) -> List[str]:
        """Provinces without a rate yet, plus the one being edited."""
        used = {d.get("name") for d in self.collection.find({}) if d["_id"] != editing_province_id}
        return [p for p in INDONESIAN_PROVINCES if p not in used]
