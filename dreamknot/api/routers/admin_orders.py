from fastapi import APIRouter, Depends

from dreamknot.api.deps import require_staff
from dreamknot.api.routers.orders import get_service
from dreamknot.domain.schemas import (
    BulkStatusOut,
    BulkStatusUpdate,
    OrderDetailOut,
    OrderOut,
    OrderStatusUpdate,
)
from dreamknot.services.order_service import OrderService

router = APIRouter(prefix="/admin/orders", tags=["admin"], dependencies=[Depends(require_staff)])


@router.get("/", response_model=list[OrderDetailOut])
def list_all_orders(svc: OrderService = Depends(get_service)):
    return svc.get_all_orders()


# declared before /{order_id} so "bulk" is not read as an id
@router.patch("/bulk", response_model=BulkStatusOut)
def bulk_update_status(payload: BulkStatusUpdate, svc: OrderService = Depends(get_service)):
    return svc.bulk_update_status(payload.order_ids, payload.status)


@router.patch("/{order_id}", response_model=OrderOut)
def update_order_status(order_id: int, payload: OrderStatusUpdate, svc: OrderService = Depends(get_service)):
    return svc.update_order_status(order_id, payload.order_status)
