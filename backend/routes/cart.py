# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log, client_ip
from models.users import User
from services import cart as cart_service
from services.cart import CartView
from utils.pricing import line_total
from schemas.cart import (
    CartAddItem, CartUpdateItem, CartSyncPayload, CartMergePayload, CouponApply,
    CartOut, CartItemOut, SummaryOut, AppliedCouponOut,
)

router = APIRouter(prefix="/cart", tags=["Cart"])

# Map the cart and its computed summary to the response schema
def _cart_to_out(view: CartView) -> CartOut:
    cart = view.cart
    items_out = []
    for it in cart.items:
        product = it.product
        items_out.append(CartItemOut(
            id=it.id,
            product_id=it.product_id,
            title=product.title if product else "",
            image_url=product.image_url if product else None,
            in_stock=bool(product and product.in_stock),
            stock_quantity=product.stock_quantity if product else 0,
            quantity=it.quantity,
            unit_price=it.unit_price,
            total_price=line_total(it.unit_price, it.quantity),
            added_at=it.added_at,
        ))

    applied = None
    if cart.coupon_code:
        applied = AppliedCouponOut(
            code=cart.coupon_code,
            discount=view.summary.discount,
            description=cart.coupon_description,
        )

    return CartOut(
        id=cart.id,
        user_id=cart.user_id,
        items=items_out,
        summary=SummaryOut(**view.summary.as_dict()),
        applied_coupon=applied,
        created_at=cart.created_at,
        updated_at=cart.updated_at,
    )

def _log(db: Session, request: Request, user: User, action: str, out: CartOut, **meta):
    write_log(
        db,
        user_id=user.id,
        action=action,
        resource="cart",
        resource_id=out.id,
        status="SUCCESS",
        ip=client_ip(request),
        meta={**meta, "items": len(out.items), "total": out.summary.total},
    )

@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _cart_to_out(cart_service.get_cart(db, current_user.id))

@router.post("/items", response_model=CartOut, status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.add_item(db, current_user.id, payload.product_id, payload.quantity))
    _log(db, request, current_user, "CART_ADD", out, product_id=payload.product_id, quantity=payload.quantity)
    return out

@router.put("/items/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.update_item(db, current_user.id, item_id, payload.quantity))
    _log(db, request, current_user, "CART_UPDATE", out, item_id=item_id, quantity=payload.quantity)
    return out

@router.delete("/items/{item_id}", response_model=CartOut)
def remove_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.remove_item(db, current_user.id, item_id))
    _log(db, request, current_user, "CART_REMOVE", out, item_id=item_id)
    return out

# Replace the stored cart with the client's local copy
@router.post("/sync", response_model=CartOut)
def sync_cart(
    payload: CartSyncPayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.sync(db, current_user.id, payload.items))
    _log(db, request, current_user, "CART_SYNC", out, received=len(payload.items))
    return out

# Merge a guest cart into the stored one at login
@router.post("/merge", response_model=CartOut)
def merge_cart(
    payload: CartMergePayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.merge(db, current_user.id, payload.items))
    _log(db, request, current_user, "CART_MERGE", out, received=len(payload.items))
    return out

@router.post("/coupon", response_model=CartOut)
def apply_coupon(
    payload: CouponApply,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.apply_coupon(db, current_user, payload.code))
    _log(db, request, current_user, "COUPON_APPLY", out, code=out.applied_coupon.code,
         discount=out.applied_coupon.discount)
    return out

@router.delete("/coupon", response_model=CartOut)
def remove_coupon(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.remove_coupon(db, current_user.id))
    _log(db, request, current_user, "COUPON_REMOVE", out)
    return out

@router.delete("/clear", response_model=CartOut)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = _cart_to_out(cart_service.clear(db, current_user.id))
    _log(db, request, current_user, "CART_CLEAR", out)
    return out
