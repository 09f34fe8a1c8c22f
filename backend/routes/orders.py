# backend/routes/orders.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, Query, Response, status
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user, role_required
from utils.audit import write_log, client_ip
from utils.errors import DomainError
from models.users import User
from models.order import Order, OrderStatus
from services import orders as order_service
from services.orders import LineInput
from schemas.order import (
    OrderResponse, OrdersPage, OrderStatusPatch, OrderCreatePayload, PlaceOrderResponse,
)

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

# Map Order model to OrderResponse schema
def _order_to_out(order: Order) -> OrderResponse:
    return OrderResponse.model_validate(order)

# Place an order from the submitted lines
@router.post("", response_model=PlaceOrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreatePayload,
    request: Request,
    response: Response,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=128),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    lines = [LineInput(product_id=it.product_id, quantity=it.quantity, unit_price=it.price) for it in payload.items]
    try:
        placed = order_service.place_order(
            db,
            current_user,
            lines,
            shipping_address=payload.shipping_address.model_dump(),
            billing_address=payload.billing_address.model_dump() if payload.billing_address else None,
            payment_method=payload.payment_method,
            coupon_code=payload.coupon_code,
            idempotency_key=idempotency_key,
            notes=payload.notes,
        )
    except DomainError as err:
        write_log(
            db,
            user_id=current_user.id,
            action="ORDER_CREATE",
            resource="orders",
            status="FAIL",
            ip=client_ip(request),
            meta={"error": err.kind.value, "items": len(lines), "coupon": payload.coupon_code},
        )
        raise

    out = PlaceOrderResponse(
        order=_order_to_out(placed.order),
        payment_details=placed.payment_details,
        created=placed.created,
    )
    if not placed.created:
        # Replayed request, nothing new was created
        response.status_code = status.HTTP_200_OK
        return out

    write_log(
        db,
        user_id=current_user.id,
        action="ORDER_CREATE",
        resource="orders",
        resource_id=out.order.id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={"order_number": out.order.order_number, "total": out.order.total, "coupon": out.order.coupon_code},
    )
    return out

# List the current user's orders with pagination
@router.get("", response_model=OrdersPage)
def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = order_service.list_orders(db, current_user.id, status_filter, page, page_size)
    return OrdersPage(
        items=[_order_to_out(o) for o in result["items"]],
        pagination=result["pagination"],
    )

@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _order_to_out(order_service.get_order(db, order_id, current_user))

# Move an order through its lifecycle (Admin only)
@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    order = order_service.change_status(
        db,
        order_id,
        payload.status,
        description=payload.description,
        tracking_number=payload.tracking_number,
        carrier=payload.carrier,
        notes=payload.notes,
    )
    out = _order_to_out(order)

    write_log(
        db,
        user_id=current_user.id,
        action="ORDER_STATUS_CHANGE",
        resource="orders",
        resource_id=order_id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={"order_number": out.order_number, "status": out.status.value},
    )
    logger.info("Order %s moved to %s by user %s", out.order_number, out.status.value, current_user.id)
    return out
