from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import get_db
from schemas import FantasyIn, FantasyUpdate, ShoeIn, ShoeUpdate, TeamIn, TeamUpdate
from security import require_admin
from services.events import FantasyService, PaymentService, RegistrationService, ShoeService, TeamService

router = APIRouter(dependencies=[Depends(require_admin)])


def get_fantasy_service(db: Database = Depends(get_db)) -> FantasyService:
    return FantasyService(db)


def get_team_service(db: Database = Depends(get_db)) -> TeamService:
    return TeamService(db)


def get_shoe_service(db: Database = Depends(get_db)) -> ShoeService:
    return ShoeService(db)


def get_registration_service(db: Database = Depends(get_db)) -> RegistrationService:
    return RegistrationService(db)


def get_payment_service(db: Database = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


# Fantasies
@router.get("/fantasies")
def list_fantasies(
    created_by: Optional[str] = None,
    upcoming: bool = False,
    service: FantasyService = Depends(get_fantasy_service),
):
    if upcoming:
        return {"items": service.list_upcoming()}
    if created_by:
        return {"items": service.list_by_creator(created_by)}
    return {"items": service.list_fantasies()}


@router.get("/fantasies/{fantasy_id}")
def get_fantasy(fantasy_id: str, service: FantasyService = Depends(get_fantasy_service)):
    return service.get_fantasy(fantasy_id)


@router.post("/fantasies", status_code=201)
def create_fantasy(
    payload: FantasyIn,
    user: dict = Depends(require_admin),
    service: FantasyService = Depends(get_fantasy_service),
):
    return service.create_fantasy(payload, created_by=str(user["_id"]))


@router.put("/fantasies/{fantasy_id}")
def update_fantasy(fantasy_id: str, payload: FantasyUpdate, service: FantasyService = Depends(get_fantasy_service)):
    return service.update_fantasy(fantasy_id, payload)


@router.delete("/fantasies/{fantasy_id}")
def delete_fantasy(fantasy_id: str, service: FantasyService = Depends(get_fantasy_service)):
    service.delete_fantasy(fantasy_id)
    return {"id": fantasy_id, "deleted": True}


# Registrations
@router.get("/fantasies/{fantasy_id}/registrations")
def list_registrations(
    fantasy_id: str,
    user_id: Optional[str] = None,
    payment_status: Optional[str] = None,
    team_id: Optional[str] = None,
    service: RegistrationService = Depends(get_registration_service),
):
    return {
        "items": service.list_by_fantasy(fantasy_id, user_id, payment_status, team_id),
        "count": service.count(fantasy_id),
        "total_revenue": service.total_revenue(fantasy_id),
    }


@router.get("/fantasies/{fantasy_id}/registrations/{registration_id}")
def get_registration(
    fantasy_id: str, registration_id: str, service: RegistrationService = Depends(get_registration_service)
):
    return service.get_registration(fantasy_id, registration_id)


# Teams
@router.get("/teams")
def list_teams(
    fantasy_id: Optional[str] = None,
    size: Optional[str] = None,
    service: TeamService = Depends(get_team_service),
):
    if size:
        return {"items": service.list_by_size(size, fantasy_id)}
    if fantasy_id:
        return {"items": service.list_by_fantasy(fantasy_id)}
    return {"items": service.list_teams()}


@router.get("/teams/{team_id}")
def get_team(team_id: str, service: TeamService = Depends(get_team_service)):
    return service.get_team(team_id)


@router.post("/teams", status_code=201)
def create_team(payload: TeamIn, service: TeamService = Depends(get_team_service)):
    return service.create_team(payload)


@router.put("/teams/{team_id}")
def update_team(team_id: str, payload: TeamUpdate, service: TeamService = Depends(get_team_service)):
    return service.update_team(team_id, payload)


@router.delete("/teams/{team_id}")
def delete_team(team_id: str, service: TeamService = Depends(get_team_service)):
    service.delete_team(team_id)
    return {"id": team_id, "deleted": True}


# Shoes
@router.get("/shoes")
def list_shoes(
    fantasy_id: Optional[str] = None,
    size: Optional[float] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    service: ShoeService = Depends(get_shoe_service),
):
    if min_price is not None and max_price is not None:
        return {"items": service.list_by_price_range(min_price, max_price, fantasy_id)}
    if size is not None:
        return {"items": service.list_by_size(size, fantasy_id)}
    if fantasy_id:
        return {"items": service.list_by_fantasy(fantasy_id)}
    return {"items": service.list_shoes()}


@router.get("/shoes/{shoe_id}")
def get_shoe(shoe_id: str, service: ShoeService = Depends(get_shoe_service)):
    return service.get_shoe(shoe_id)


@router.post("/shoes", status_code=201)
def create_shoe(payload: ShoeIn, service: ShoeService = Depends(get_shoe_service)):
    return service.create_shoe(payload)


@router.put("/shoes/{shoe_id}")
def update_shoe(shoe_id: str, payload: ShoeUpdate, service: ShoeService = Depends(get_shoe_service)):
    return service.update_shoe(shoe_id, payload)


@router.delete("/shoes/{shoe_id}")
def delete_shoe(shoe_id: str, service: ShoeService = Depends(get_shoe_service)):
    service.delete_shoe(shoe_id)
    return {"id": shoe_id, "deleted": True}


# Payments
@router.get("/payments")
def list_payments(
    fantasy_id: Optional[str] = None,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    payment_method: Optional[str] = None,
    service: PaymentService = Depends(get_payment_service),
):
    return {"items": service.list_payments(fantasy_id, user_id, status, payment_method)}


@router.get("/payments/revenue/{fantasy_id}")
def payment_revenue(fantasy_id: str, service: PaymentService = Depends(get_payment_service)):
    return {"fantasy_id": fantasy_id, "total_revenue": service.total_revenue_by_fantasy(fantasy_id)}


@router.get("/payments/registration/{registration_id}")
def get_payment_by_registration(registration_id: str, service: PaymentService = Depends(get_payment_service)):
    return service.get_by_registration(registration_id)


@router.get("/payments/external/{external_id}")
def get_payment_by_external_id(external_id: str, service: PaymentService = Depends(get_payment_service)):
    return service.get_by_external_id(external_id)


@router.get("/payments/{payment_id}")
def get_payment(payment_id: str, service: PaymentService = Depends(get_payment_service)):
    return service.get_payment(payment_id)
