from datetime import timedelta

import pytest

from database import utcnow
from errors import NotFoundError, ValidationError
from schemas import FantasyIn, FantasyUpdate, ShoeIn, TeamIn, TeamUpdate
from services.events import FantasyService, PaymentService, RegistrationService, ShoeService, TeamService


def fantasy_data(**overrides):
    data = {
        "title": "Night Run",
        "address": "Jl. Raya Kuta",
        "schedule": utcnow() + timedelta(days=7),
        "venue": "Kuta Beach",
        "registration_fee": 150000,
    }
    data.update(overrides)
    return FantasyIn(**data)


@pytest.mark.unit
class TestFantasyService:
    @pytest.fixture(autouse=True)
    def setup(self, db):
        self.service = FantasyService(db)

    def test_create_records_creator(self):
        fantasy = self.service.create_fantasy(fantasy_data(), created_by="admin-1")

        assert fantasy["created_by"] == "admin-1"
        assert fantasy["international"] is False
        assert self.service.list_by_creator("admin-1")[0]["id"] == fantasy["id"]

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            self.service.create_fantasy(fantasy_data(title="  "))

    def test_upcoming_excludes_past_events(self):
        self.service.create_fantasy(fantasy_data(title="Last year", schedule=utcnow() - timedelta(days=300)))
        later = self.service.create_fantasy(fantasy_data(title="Later", schedule=utcnow() + timedelta(days=30)))
        sooner = self.service.create_fantasy(fantasy_data(title="Sooner", schedule=utcnow() + timedelta(days=2)))

        upcoming = self.service.list_upcoming()

        assert [f["id"] for f in upcoming] == [sooner["id"], later["id"]]

    def test_update_and_delete(self):
        fantasy = self.service.create_fantasy(fantasy_data())

        updated = self.service.update_fantasy(fantasy["id"], FantasyUpdate(venue="Sanur", international=True))
        assert updated["venue"] == "Sanur"
        assert updated["title"] == "Night Run"

        self.service.delete_fantasy(fantasy["id"])
        with pytest.raises(NotFoundError):
            self.service.get_fantasy(fantasy["id"])


@pytest.mark.unit
class TestTeamAndShoeServices:
    @pytest.fixture(autouse=True)
    def setup(self, db):
        self.teams = TeamService(db)
        self.shoes = ShoeService(db)

    def test_team_lookup_by_fantasy_and_shirt_size(self):
        self.teams.create_team(
            TeamIn(name="Red", fantasy_id="f1", tshirts=[{"id": "t1", "size": "M", "image": "/uploads/r"}])
        )
        self.teams.create_team(
            TeamIn(name="Blue", fantasy_id="f1", tshirts=[{"id": "t2", "size": "XL", "image": "/uploads/b"}])
        )
        self.teams.create_team(TeamIn(name="Green", fantasy_id="f2"))

        assert len(self.teams.list_by_fantasy("f1")) == 2
        assert [t["name"] for t in self.teams.list_by_size("XL")] == ["Blue"]
        assert self.teams.list_by_size("M", fantasy_id="f2") == []

    def test_team_update_replaces_shirts(self):
        team = self.teams.create_team(TeamIn(name="Red", fantasy_id="f1"))

        updated = self.teams.update_team(team["id"], TeamUpdate(tshirts=[{"id": "t1", "size": "S", "image": "/i"}]))

        assert updated["tshirts"] == [{"id": "t1", "size": "S", "image": "/i"}]

    def test_invalid_shirt_size_rejected(self):
        with pytest.raises(ValueError):
            TeamIn(name="Red", fantasy_id="f1", tshirts=[{"id": "t1", "size": "XS", "image": "/i"}])

    def test_shoe_filters(self):
        self.shoes.create_shoe(ShoeIn(name="Racer", price=900000, size=42, fantasy_id="f1"))
        self.shoes.create_shoe(ShoeIn(name="Trail", price=1200000, size=43, fantasy_id="f1"))
        self.shoes.create_shoe(ShoeIn(name="Budget", price=300000, size=42, fantasy_id="f2"))

        assert [s["name"] for s in self.shoes.list_by_price_range(500000, 1500000)] == ["Racer", "Trail"]
        assert {s["name"] for s in self.shoes.list_by_size(42)} == {"Racer", "Budget"}
        assert [s["name"] for s in self.shoes.list_by_size(42, fantasy_id="f1")] == ["Racer"]

    def test_delete_missing_shoe(self):
        with pytest.raises(NotFoundError):
            self.shoes.delete_shoe("64b7f0000000000000000000")


@pytest.mark.unit
class TestRegistrationAndPaymentViews:
    @pytest.fixture(autouse=True)
    def setup(self, db):
        self.db = db
        self.registrations = RegistrationService(db)
        self.payments = PaymentService(db)
        now = utcnow()
        db["fantasies.registrations"].insert_many(
            [
                {"fantasy_id": "f1", "user_id": "u1", "team_id": "t1", "payment_status": "paid", "total_paid": 150000, "registered_at": now},
                {"fantasy_id": "f1", "user_id": "u2", "team_id": "t1", "payment_status": "pending", "total_paid": 0, "registered_at": now},
                {"fantasy_id": "f1", "user_id": "u3", "team_id": "t2", "payment_status": "paid", "total_paid": 175000, "registered_at": now},
                {"fantasy_id": "f2", "user_id": "u1", "team_id": "t9", "payment_status": "paid", "total_paid": 99000, "registered_at": now},
            ]
        )
        db["payments"].insert_many(
            [
                {"fantasy_id": "f1", "registration_id": "r1", "external_id": "inv-1", "status": "PAID", "amount": 150000, "payment_method": "qris", "created_at": now},
                {"fantasy_id": "f1", "registration_id": "r2", "external_id": "inv-2", "status": "PENDING", "amount": 150000, "payment_method": "va", "created_at": now},
            ]
        )

    def test_registration_filters_and_totals(self):
        assert len(self.registrations.list_by_fantasy("f1")) == 3
        assert len(self.registrations.list_by_fantasy("f1", payment_status="paid")) == 2
        assert len(self.registrations.list_by_fantasy("f1", team_id="t1", user_id="u2")) == 1
        assert self.registrations.count("f1") == 3
        assert self.registrations.total_revenue("f1") == 325000

    def test_registration_must_belong_to_fantasy(self):
        other = self.db["fantasies.registrations"].find_one({"fantasy_id": "f2"})

        with pytest.raises(NotFoundError):
            self.registrations.get_registration("f1", str(other["_id"]))
        assert self.registrations.get_registration("f2", str(other["_id"]))["user_id"] == "u1"

    def test_payment_lookups(self):
        assert self.payments.get_by_external_id("inv-2")["registration_id"] == "r2"
        assert self.payments.get_by_registration("r1")["status"] == "PAID"
        assert len(self.payments.list_payments(fantasy_id="f1", payment_method="qris")) == 1
        assert self.payments.total_revenue_by_fantasy("f1") == 150000
        with pytest.raises(NotFoundError):
            self.payments.get_by_external_id("inv-404")
