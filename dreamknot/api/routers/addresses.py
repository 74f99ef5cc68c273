from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dreamknot.data.database import get_db
from dreamknot.domain.schemas import AddressIn, AddressList, AddressOut, MessageOut
from dreamknot.services.address_service import AddressService

router = APIRouter(prefix="/addresses", tags=["addresses"])


def get_service(db: Session = Depends(get_db)) -> AddressService:
    return AddressService(db)


@router.get("/", response_model=AddressList)
def list_addresses(user_id: int = Query(...), svc: AddressService = Depends(get_service)):
    return {"addresses": svc.list_addresses(user_id)}


@router.post("/", response_model=AddressOut, status_code=201)
def create_address(payload: AddressIn, user_id: int = Query(...), svc: AddressService = Depends(get_service)):
    return svc.create_address(user_id, payload.model_dump())


@router.put("/{address_id}", response_model=AddressOut)
def update_address(
    address_id: int,
    payload: AddressIn,
    user_id: int = Query(...),
    svc: AddressService = Depends(get_service),
):
    return svc.update_address(user_id, address_id, payload.model_dump())


@router.delete("/{address_id}", response_model=MessageOut)
def delete_address(address_id: int, user_id: int = Query(...), svc: AddressService = Depends(get_service)):
    svc.delete_address(user_id, address_id)
    return {"message": "Address deleted successfully"}
