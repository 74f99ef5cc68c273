# dreamknot/api/deps.py
from fastapi import Depends, Query
from sqlalchemy.orm import Session

from dreamknot.data.database import get_db
from dreamknot.domain.schemas import UserRead
from dreamknot.services.catalog_client import CatalogClient, get_catalog_client
from dreamknot.services.lock_service import LockService
from dreamknot.services.notification_service import NotificationService
from dreamknot.services.payment_gateway import RazorpayClient
from dreamknot.services.user_service import UserService


def get_catalog() -> CatalogClient:
    return get_catalog_client()


def get_lock_service() -> LockService:
    return LockService()


def get_gateway() -> RazorpayClient:
    return RazorpayClient()


def get_notifications() -> NotificationService:
    return NotificationService()


def require_staff(
    user_id: int = Query(..., description="Acting admin or staff user"),
    db: Session = Depends(get_db),
) -> UserRead:
    return UserService(db).require_staff(user_id)


def require_admin(
    user_id: int = Query(..., description="Acting admin user"),
    db: Session = Depends(get_db),
) -> UserRead:
    return UserService(db).require_admin(user_id)
