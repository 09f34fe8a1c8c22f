# backend/routes/admin.py
from fastapi import APIRouter, Depends, Query, Request, status
from typing import List, Optional, Literal
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from models.coupon import Coupon
from utils.tokenJWT import role_required
from utils.audit import write_log, client_ip
from utils.clock import utcnow
from services import coupons as coupon_service
from schemas.coupon import CouponCreate, CouponOut, CouponActivePatch

router = APIRouter(prefix="/admin", tags=["Admin"])

# Schema for paginated coupon list response
class PaginatedCouponsResponse(BaseModel):
    items: List[CouponOut]
    total: int
    page: int
    page_size: int


# Create a coupon (Admin only)
@router.post("/coupons", response_model=CouponOut, status_code=status.HTTP_201_CREATED)
def create_coupon(
    payload: CouponCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    coupon = coupon_service.create_coupon(db, payload.model_dump(), created_by=current_user.id)
    out = CouponOut.model_validate(coupon)

    write_log(
        db,
        user_id=current_user.id,
        action="COUPON_CREATE",
        resource="coupons",
        resource_id=out.id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={"code": out.code, "type": out.type.value, "value": out.value},
    )
    return out


# List coupons with filtering and pagination (Admin only)
@router.get("/coupons", response_model=PaginatedCouponsResponse)
def list_coupons(
    q: Optional[str] = Query(None, description="Search by code or name"),
    state: Optional[Literal["active", "inactive", "expired"]] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    query = db.query(Coupon)

    # Filter by code or name
    if q:
        like = f"%{q}%"
        query = query.filter(Coupon.code.ilike(like) | Coupon.name.ilike(like))

    now = utcnow()
    if state == "active":
        query = query.filter(Coupon.is_active == True, Coupon.valid_until >= now)  # noqa: E712
    elif state == "inactive":
        query = query.filter(Coupon.is_active == False)  # noqa: E712
    elif state == "expired":
        query = query.filter(Coupon.valid_until < now)

    total = query.count()
    coupons = query.order_by(Coupon.created_at.desc(), Coupon.id.desc()).offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": coupons,
        "total": total,
        "page": page,
        "page_size": page_size,
    }


# Activate or deactivate a coupon (Admin only)
@router.patch("/coupons/{coupon_id}", response_model=CouponOut)
def set_coupon_active(
    coupon_id: int,
    payload: CouponActivePatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    coupon = coupon_service.set_active(db, coupon_id, payload.is_active)
    out = CouponOut.model_validate(coupon)

    write_log(
        db,
        user_id=current_user.id,
        action="COUPON_ACTIVATE" if payload.is_active else "COUPON_DEACTIVATE",
        resource="coupons",
        resource_id=coupon_id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={"code": out.code},
    )
    return out
