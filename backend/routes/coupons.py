# backend/routes/coupons.py
from typing import List, Optional
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user, get_optional_user
from models.users import User
from services import coupons as coupon_service
from schemas.coupon import CouponOut, CouponValidationOut

router = APIRouter(prefix="/coupons", tags=["Coupons"])

# Preview a coupon; works without a token, per-user rules need one
@router.get("/validate/{code}", response_model=CouponValidationOut)
def validate_coupon(
    code: str,
    cart_total: Optional[Decimal] = Query(None, ge=0),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    result = coupon_service.check_coupon(db, code, current_user, cart_total)
    return CouponValidationOut(
        valid=result.valid,
        message=result.message,
        error=result.error,
        coupon=CouponOut.model_validate(result.coupon),
        discount=result.discount,
        final_total=result.final_total,
    )

# Coupons the current user could apply right now
@router.get("/available", response_model=List[CouponOut])
def available_coupons(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return coupon_service.list_available(db, current_user)
