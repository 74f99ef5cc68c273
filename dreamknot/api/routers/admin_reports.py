from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dreamknot.api.deps import get_catalog, require_staff
from dreamknot.data.database import get_db
from dreamknot.domain.schemas import CustomersReport, OverviewReport, ProductsReport, SalesReport
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.report_service import ReportService

router = APIRouter(prefix="/admin/reports", tags=["admin"], dependencies=[Depends(require_staff)])


def get_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
) -> ReportService:
    return ReportService(db, catalog)


# start_date and end_date narrow a report only when both are given


@router.get("/overview", response_model=OverviewReport)
def overview(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    svc: ReportService = Depends(get_service),
):
    return svc.overview(start_date, end_date)


@router.get("/sales", response_model=SalesReport)
def sales(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    svc: ReportService = Depends(get_service),
):
    return svc.sales(start_date, end_date)


@router.get("/products", response_model=ProductsReport)
def products(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    svc: ReportService = Depends(get_service),
):
    return svc.products(start_date, end_date)


@router.get("/customers", response_model=CustomersReport)
def customers(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    svc: ReportService = Depends(get_service),
):
    return svc.customers(start_date, end_date)
