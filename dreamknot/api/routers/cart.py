# dreamknot/api/routers/cart.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dreamknot.api.deps import get_catalog, get_lock_service
from dreamknot.data.database import get_db
from dreamknot.domain.schemas import CartItemIn, CartItemUpdate, CartOut, CountOut
from dreamknot.services.cart_service import CartService
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.lock_service import LockService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(db=db, catalog=catalog, lock_service=lock_service)


@router.get("/", response_model=CartOut)
def get_cart(user_id: int = Query(...), svc: CartService = Depends(get_service)):
    return svc.get_cart(user_id)


@router.get("/count", response_model=CountOut)
def cart_count(user_id: int = Query(...), svc: CartService = Depends(get_service)):
    return {"count": svc.item_count(user_id)}


@router.post("/items", response_model=CartOut)
def add_item(payload: CartItemIn, user_id: int = Query(...), svc: CartService = Depends(get_service)):
    return svc.add_item(
        user_id=user_id,
        product_id=payload.product_id,
        customization=payload.customization,
        qty=payload.qty,
    )


@router.patch("/items/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    return svc.update_item(user_id, item_id, payload.qty)


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(item_id: int, user_id: int = Query(...), svc: CartService = Depends(get_service)):
    return svc.remove_item(user_id, item_id)


@router.delete("/", response_model=CartOut)
def clear_cart(user_id: int = Query(...), svc: CartService = Depends(get_service)):
    return svc.clear_cart(user_id)
