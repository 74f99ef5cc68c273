from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from dreamknot.api.deps import get_catalog
from dreamknot.data.database import get_db
from dreamknot.domain.schemas import CountOut, WishlistIn, WishlistOut, WishlistToggleOut
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


def get_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
) -> WishlistService:
    return WishlistService(db, catalog)


@router.get("/", response_model=WishlistOut)
def get_wishlist(user_id: int = Query(...), svc: WishlistService = Depends(get_service)):
    return svc.get_wishlist(user_id)


@router.get("/count", response_model=CountOut)
def wishlist_count(user_id: int = Query(...), svc: WishlistService = Depends(get_service)):
    return {"count": svc.count(user_id)}


@router.post("/", status_code=201)
def add_to_wishlist(payload: WishlistIn, user_id: int = Query(...), svc: WishlistService = Depends(get_service)):
    svc.add(user_id, payload.product_id)
    return {"message": "Added to wishlist"}


@router.post("/{product_id}/toggle", response_model=WishlistToggleOut)
def toggle_wishlist(product_id: int, user_id: int = Query(...), svc: WishlistService = Depends(get_service)):
    return svc.toggle(user_id, product_id)


@router.delete("/", status_code=204)
def clear_wishlist(user_id: int = Query(...), svc: WishlistService = Depends(get_service)):
    svc.clear(user_id)
    return Response(status_code=204)


@router.delete("/{product_id}", status_code=204)
def remove_from_wishlist(product_id: int, user_id: int = Query(...), svc: WishlistService = Depends(get_service)):
    svc.remove(user_id, product_id)
    return Response(status_code=204)
