# dreamknot/services/wishlist_service.py
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dreamknot.data.models.wishlist_item import WishlistItemModel
from dreamknot.domain.errors import ConflictError, NotFoundError
from dreamknot.repos.wishlist_repo import WishlistRepo
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)


class WishlistService:
    """Set of product ids per user; entries for vanished products are pruned on read."""

    def __init__(self, db: Session, catalog: CatalogClient):
        self.repo = WishlistRepo(db)
        self.catalog = catalog

    def get_wishlist(self, user_id: int) -> Dict[str, Any]:
        items = self.repo.list_items(user_id)
        if not items:
            return {"wishlist": []}

        products = self.catalog.products_by_id()
        if not products:
            # empty catalog reads as "CMS down", keep entries and show nothing
            logger.warning(f"Catalog empty while reading wishlist of user {user_id}, skipping prune")
            return {"wishlist": []}

        wishlist = []
        stale = []
        for item in items:
            product = products.get(item.product_id)
            if product:
                wishlist.append({"id": item.id, "product": product, "added_at": item.created_at})
            else:
                stale.append(item)

        if stale:
            for item in stale:
                self.repo.delete_item(item)
            self.repo.commit()
            logger.info(f"Pruned {len(stale)} unavailable products from wishlist of user {user_id}")

        return {"wishlist": wishlist}

    def add(self, user_id: int, product_id: int) -> None:
        if not self.catalog.get_product(product_id):
            raise NotFoundError("Product")

        if self.repo.get_item(user_id, product_id):
            raise ConflictError("Product already in wishlist")

        try:
            self.repo.add_item(WishlistItemModel(user_id=user_id, product_id=product_id))
            self.repo.commit()
        except IntegrityError:
            self.repo.rollback()
            raise ConflictError("Product already in wishlist")

    def remove(self, user_id: int, product_id: int) -> None:
        # absent entries are fine
        self.repo.delete_product(user_id, product_id)
        self.repo.commit()

    def toggle(self, user_id: int, product_id: int) -> Dict[str, bool]:
        existing = self.repo.get_item(user_id, product_id)
        if existing:
            self.repo.delete_item(existing)
            self.repo.commit()
            return {"added": False}

        self.add(user_id, product_id)
        return {"added": True}

    def contains(self, user_id: int, product_id: int) -> bool:
        return self.repo.get_item(user_id, product_id) is not None

    def clear(self, user_id: int) -> None:
        self.repo.clear(user_id)
        self.repo.commit()

    def count(self, user_id: int) -> int:
        return self.repo.count(user_id)
