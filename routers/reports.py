from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pymongo.database import Database

from database import get_db, utcnow
from security import require_admin
from services.reports import SalesReportService, StatsService

router = APIRouter(dependencies=[Depends(require_admin)])


def get_report_service(db: Database = Depends(get_db)) -> SalesReportService:
    return SalesReportService(db)


def get_stats_service(db: Database = Depends(get_db)) -> StatsService:
    return StatsService(db)


@router.get("/stats")
def marketplace_stats(service: StatsService = Depends(get_stats_service)):
    return service.marketplace_stats()


@router.get("/reports")
def list_sales_reports(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    service: SalesReportService = Depends(get_report_service),
):
    reports = service.list_sales_reports(date_from, date_to, min_amount, max_amount)
    return {"items": reports, "stats": service.summarize(reports)}


@router.get("/reports/export")
def export_sales_reports(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    service: SalesReportService = Depends(get_report_service),
):
    reports = service.list_sales_reports(date_from, date_to, min_amount, max_amount)
    filename = f"sales-report-{utcnow().date().isoformat()}.csv"
    return Response(
        content=service.export_csv(reports),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
