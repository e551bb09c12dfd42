"""
Fantasy events and the aggregates hanging off them.

Teams, shoes and payments point at their event through `fantasy_id`;
registrations live in `fantasies.registrations`. None of these references is
enforced, they are kept consistent by the apps that write them.
"""
from typing import List, Optional

from pymongo import ASCENDING, DESCENDING

from database import naive_utc, utcnow
from errors import NotFoundError, ValidationError
from schemas import FantasyIn, FantasyUpdate, ShoeIn, ShoeUpdate, TeamIn, TeamUpdate
from services.base import BaseService, DocumentService, store_call

REGISTRATIONS_COLLECTION = "fantasies.registrations"


class FantasyService(DocumentService):
    collection_name = "fantasies"
    label = "Fantasy"

    @store_call("create fantasy")
    def create_fantasy(self, data: FantasyIn, created_by: Optional[str] = None) -> dict:
        if not data.title.strip():
            raise ValidationError("Event title is required")
        doc = data.model_dump()
        doc["created_by"] = data.created_by or created_by
        return self._create(doc)

    @store_call("fetch fantasies")
    def list_fantasies(self) -> List[dict]:
        return self._list(sort=self.default_sort)

    @store_call("fetch fantasy")
    def get_fantasy(self, fantasy_id: str) -> dict:
        return self._get(fantasy_id)

    @store_call("update fantasy")
    def update_fantasy(self, fantasy_id: str, data: FantasyUpdate) -> dict:
        return self._update(fantasy_id, data.model_dump(exclude_unset=True))

    @store_call("delete fantasy")
    def delete_fantasy(self, fantasy_id: str) -> None:
        self._delete(fantasy_id)

    @store_call("fetch fantasies by creator")
    def list_by_creator(self, created_by: str) -> List[dict]:
        return self._list({"created_by": created_by}, sort=self.default_sort)

    @store_call("fetch upcoming fantasies")
    def list_upcoming(self) -> List[dict]:
        return self._list({"schedule": {"$gt": naive_utc(utcnow())}}, sort=[("schedule", ASCENDING)])


class TeamService(DocumentService):
    collection_name = "teams"
    label = "Team"

    @store_call("create team")
    def create_team(self, data: TeamIn) -> dict:
        if not data.name.strip():
            raise ValidationError("Team name is required")
        return self._create(data.model_dump())

    @store_call("fetch teams")
    def list_teams(self) -> List[dict]:
        return self._list(sort=self.default_sort)

    @store_call("fetch teams by fantasy ID")
    def list_by_fantasy(self, fantasy_id: str) -> List[dict]:
        return self._list({"fantasy_id": fantasy_id}, sort=self.default_sort)

    @store_call("fetch team")
    def get_team(self, team_id: str) -> dict:
        return self._get(team_id)

    @store_call("update team")
    def update_team(self, team_id: str, data: TeamUpdate) -> dict:
        return self._update(team_id, data.model_dump(exclude_unset=True))

    @store_call("delete team")
    def delete_team(self, team_id: str) -> None:
        self._delete(team_id)

    @store_call("fetch teams by size")
    def list_by_size(self, size: str, fantasy_id: Optional[str] = None) -> List[dict]:
        query = {"tshirts.size": size}
        if fantasy_id:
            query["fantasy_id"] = fantasy_id
        return self._list(query, sort=self.default_sort)


class ShoeService(DocumentService):
    collection_name = "shoes"
    label = "Shoe"

    @store_call("create shoe")
    def create_shoe(self, data: ShoeIn) -> dict:
        if not data.name.strip():
            raise ValidationError("Shoe name is required")
        return self._create(data.model_dump())

    @store_call("fetch shoes")
    def list_shoes(self) -> List[dict]:
        return self._list(sort=self.default_sort)

    @store_call("fetch shoes by fantasy ID")
    def list_by_fantasy(self, fantasy_id: str) -> List[dict]:
        return self._list({"fantasy_id": fantasy_id}, sort=self.default_sort)

    @store_call("fetch shoe")
    def get_shoe(self, shoe_id: str) -> dict:
        return self._get(shoe_id)

    @store_call("update shoe")
    def update_shoe(self, shoe_id: str, data: ShoeUpdate) -> dict:
        return self._update(shoe_id, data.model_dump(exclude_unset=True))

    @store_call("delete shoe")
    def delete_shoe(self, shoe_id: str) -> None:
        self._delete(shoe_id)

    @store_call("fetch shoes by size")
    def list_by_size(self, size: float, fantasy_id: Optional[str] = None) -> List[dict]:
        query = {"size": size}
        if fantasy_id:
            query["fantasy_id"] = fantasy_id
        return self._list(query, sort=self.default_sort)

    @store_call("fetch shoes by price range")
    def list_by_price_range(self, min_price: float, max_price: float, fantasy_id: Optional[str] = None) -> List[dict]:
        query = {"price": {"$gte": min_price, "$lte": max_price}}
        if fantasy_id:
            query["fantasy_id"] = fantasy_id
        return self._list(query, sort=[("price", ASCENDING)])


class RegistrationService(BaseService):
    """Read-only view over an event's registrations."""

    collection_name = REGISTRATIONS_COLLECTION
    label = "Registration"
    sort = [("registered_at", DESCENDING)]

    @store_call("fetch registrations")
    def list_by_fantasy(
        self,
        fantasy_id: str,
        user_id: Optional[str] = None,
        payment_status: Optional[str] = None,
        team_id: Optional[str] = None,
    ) -> List[dict]:
        query = {"fantasy_id": fantasy_id}
        if user_id:
            query["user_id"] = user_id
        if payment_status:
            query["payment_status"] = payment_status
        if team_id:
            query["team_id"] = team_id
        return self._list(query, sort=self.sort)

    @store_call("fetch registration")
    def get_registration(self, fantasy_id: str, registration_id: str) -> dict:
        doc = self._find_or_404(registration_id)
        if doc.get("fantasy_id") != fantasy_id:
            raise NotFoundError("Registration not found")
        return self._serialize(doc)

    @store_call("get registrations count")
    def count(self, fantasy_id: str) -> int:
        return self.collection.count_documents({"fantasy_id": fantasy_id})

    @store_call("calculate total revenue")
    def total_revenue(self, fantasy_id: str) -> float:
        paid = self.collection.find({"fantasy_id": fantasy_id, "payment_status": "paid"}, {"total_paid": 1})
        return sum(r.get("total_paid", 0) for r in paid)


class PaymentService(BaseService):
    """Read-only view over gateway payments for event registrations."""

    collection_name = "payments"
    label = "Payment"
    sort = [("created_at", DESCENDING)]

    @store_call("fetch payments")
    def list_payments(
        self,
        fantasy_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> List[dict]:
        query = {}
        if fantasy_id:
            query["fantasy_id"] = fantasy_id
        if user_id:
            query["user_id"] = user_id
        if status:
            query["status"] = status
        if payment_method:
            query["payment_method"] = payment_method
        return self._list(query, sort=self.sort)

    @store_call("fetch payment")
    def get_payment(self, payment_id: str) -> dict:
        return self._serialize(self._find_or_404(payment_id))

    @store_call("fetch payment by registration ID")
    def get_by_registration(self, registration_id: str) -> dict:
        doc = self.collection.find_one({"registration_id": registration_id})
        if not doc:
            raise NotFoundError("Payment not found")
        return self._serialize(doc)

    @store_call("fetch payment by external ID")
    def get_by_external_id(self, external_id: str) -> dict:
        doc = self.collection.find_one({"external_id": external_id})
        if not doc:
            raise NotFoundError("Payment not found")
        return self._serialize(doc)

    @store_call("calculate total revenue")
    def total_revenue_by_fantasy(self, fantasy_id: str) -> float:
        paid = self.collection.find({"fantasy_id": fantasy_id, "status": "PAID"}, {"amount": 1})
        return sum(p.get("amount", 0) for p in paid)
