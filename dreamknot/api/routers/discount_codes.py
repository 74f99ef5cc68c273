from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from dreamknot.api.deps import require_staff
from dreamknot.data.database import get_db
from dreamknot.domain.schemas import (
    DiscountCodeCreate,
    DiscountCodeOut,
    DiscountCodeUpdate,
    DiscountValidateIn,
    DiscountValidateOut,
)
from dreamknot.services.discount_service import DiscountService

router = APIRouter(prefix="/discount-codes", tags=["discount-codes"])


@router.post("/validate", response_model=DiscountValidateOut)
def validate_code(payload: DiscountValidateIn, db: Session = Depends(get_db)):
    return DiscountService(db).validate(payload.code, payload.order_total)


@router.get("/", response_model=list[DiscountCodeOut], dependencies=[Depends(require_staff)])
def list_codes(active_only: bool = Query(False), db: Session = Depends(get_db)):
    return DiscountService(db).list_codes(active_only)


@router.post("/", response_model=DiscountCodeOut, status_code=201, dependencies=[Depends(require_staff)])
def create_code(payload: DiscountCodeCreate, db: Session = Depends(get_db)):
    return DiscountService(db).create_code(payload.model_dump())


@router.get("/{code_id}", response_model=DiscountCodeOut, dependencies=[Depends(require_staff)])
def get_code(code_id: int, db: Session = Depends(get_db)):
    return DiscountService(db).get_code(code_id)


@router.patch("/{code_id}", response_model=DiscountCodeOut, dependencies=[Depends(require_staff)])
def update_code(code_id: int, payload: DiscountCodeUpdate, db: Session = Depends(get_db)):
    return DiscountService(db).update_code(code_id, payload.model_dump(exclude_unset=True))


@router.post("/{code_id}/toggle", response_model=DiscountCodeOut, dependencies=[Depends(require_staff)])
def toggle_code(code_id: int, db: Session = Depends(get_db)):
    return DiscountService(db).toggle_code(code_id)


@router.delete("/{code_id}", status_code=204, dependencies=[Depends(require_staff)])
def delete_code(code_id: int, db: Session = Depends(get_db)):
    DiscountService(db).delete_code(code_id)
    return Response(status_code=204)
