from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dreamknot.api.deps import get_catalog
from dreamknot.domain.schemas import CategoryOut
from dreamknot.services.catalog_client import CatalogClient

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryList(BaseModel):
    categories: List[CategoryOut]


@router.get("/", response_model=CategoryList)
def list_categories(catalog: CatalogClient = Depends(get_catalog)):
    return {"categories": catalog.list_categories()}
