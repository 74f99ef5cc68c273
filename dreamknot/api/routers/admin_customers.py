from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dreamknot.api.deps import get_catalog, require_admin, require_staff
from dreamknot.data.database import get_db
from dreamknot.domain.schemas import CustomerPage, RoleUpdate, UserRead
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.report_service import ReportService
from dreamknot.services.user_service import UserService

router = APIRouter(prefix="/admin/customers", tags=["admin"])


def get_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
) -> ReportService:
    return ReportService(db, catalog)


@router.get("/", response_model=CustomerPage, dependencies=[Depends(require_staff)])
def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str | None = None,
    role: Literal["all", "customer", "staff", "admin"] = "all",
    svc: ReportService = Depends(get_service),
):
    return svc.list_customers(page=page, limit=limit, search=search, role=None if role == "all" else role)


@router.patch("/", response_model=UserRead, dependencies=[Depends(require_admin)])
def change_role(payload: RoleUpdate, db: Session = Depends(get_db)):
    return UserService(db).set_role(payload.user_id, payload.role)
