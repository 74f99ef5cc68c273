from decimal import Decimal
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from dreamknot.api.deps import get_catalog
from dreamknot.domain.errors import NotFoundError
from dreamknot.domain.schemas import Pagination, ProductOut
from dreamknot.services.catalog_client import CatalogClient

router = APIRouter(prefix="/products", tags=["products"])


class ProductPage(BaseModel):
    products: List[ProductOut]
    pagination: Pagination


@router.get("/", response_model=ProductPage)
def list_products(
    search: str | None = None,
    category: str | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    sort_by: Literal["newest", "price-low", "price-high", "name"] = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    featured: bool = False,
    catalog: CatalogClient = Depends(get_catalog),
):
    return catalog.list_products(
        search=search,
        category=category,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        page=page,
        limit=limit,
        featured=featured,
    )


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, catalog: CatalogClient = Depends(get_catalog)):
    product = catalog.get_product(product_id)
    if not product:
        raise NotFoundError("Product")
    return product
