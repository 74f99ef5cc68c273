# dreamknot/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dreamknot.api.deps import get_catalog, get_gateway, get_lock_service, get_notifications
from dreamknot.data.database import get_db
from dreamknot.domain.schemas import (
    OrderCreate,
    OrderDetailOut,
    OrderOut,
    PaymentOrderCreate,
    PaymentOrderOut,
    PaymentVerifyIn,
)
from dreamknot.services.catalog_client import CatalogClient
from dreamknot.services.lock_service import LockService
from dreamknot.services.notification_service import NotificationService
from dreamknot.services.order_service import OrderService
from dreamknot.services.payment_gateway import RazorpayClient
from dreamknot.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
    notifications: NotificationService = Depends(get_notifications),
    lock_service: LockService = Depends(get_lock_service),
) -> OrderService:
    return OrderService(db, catalog, notifications, lock_service)


def get_payment_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
    gateway: RazorpayClient = Depends(get_gateway),
    orders: OrderService = Depends(get_service),
) -> PaymentService:
    return PaymentService(db, catalog, gateway, orders)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(payload: OrderCreate, user_id: int = Query(...), svc: OrderService = Depends(get_service)):
    """
    Places an order without online payment, payment stays pending.
    """
    return svc.create_order(
        user_id,
        payload.shipping_address,
        payload.billing_address,
        discount_code=payload.discount_code,
    )


@router.post("/payment", response_model=PaymentOrderOut)
def create_payment_order(
    payload: PaymentOrderCreate,
    user_id: int = Query(...),
    svc: PaymentService = Depends(get_payment_service),
):
    """
    Opens a gateway order for the current cart; the client completes the
    payment in the gateway widget and calls /orders/verify-payment.
    """
    return svc.create_payment_order(user_id, payload.discount_code, payload.discount_amount)


@router.post("/verify-payment", response_model=OrderOut, status_code=201)
def verify_payment(
    payload: PaymentVerifyIn,
    user_id: int = Query(...),
    svc: PaymentService = Depends(get_payment_service),
):
    return svc.verify_and_create_order(
        user_id,
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
        payload.shipping_address,
        payload.billing_address,
        discount_code=payload.discount_code,
        discount_amount=payload.discount_amount,
    )


@router.get("/", response_model=list[OrderDetailOut])
def list_orders(user_id: int = Query(...), svc: OrderService = Depends(get_service)):
    return svc.get_user_orders(user_id)


@router.get("/{order_id}", response_model=OrderDetailOut)
def get_order(order_id: int, user_id: int = Query(...), svc: OrderService = Depends(get_service)):
    return svc.get_order(order_id, user_id)
