"""
Coupon validation, discount calculation and usage accounting.

validate() and calculate_discount() only look at the coupon and the numbers
passed in. record_usage() is the single place coupon counters change; it uses
conditional UPDATEs and is meant to run inside the order transaction.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.coupon import Coupon, CouponType, CouponUsage
from models.order import Order, OrderStatus
from utils.clock import utcnow, as_naive_utc
from utils.errors import DomainError, ErrorKind, COUPON_ERRORS
from utils.money import round2, percent_of, to_decimal, ZERO

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    valid: bool
    message: str
    coupon: Coupon
    error: Optional[str] = None
    discount: Optional[Decimal] = None
    final_total: Optional[Decimal] = None


def _money(value) -> str:
    return f"₹{round2(value)}"


def _ids(values) -> set:
    return {str(v) for v in (values or [])}


def validate(coupon: Coupon, user_id, cart_total, cart_items: Iterable = (), now=None,
             user=None, has_prior_orders: bool = False) -> ValidationResult:
    """
    Check a coupon for a user and cart, raising DomainError on the first failed rule.

    user_id None skips the per-user limit (anonymous preview); cart_total None
    skips the order value limits. Eligibility rules need the `user` row.
    """
    now = now or utcnow()
    code = coupon.code

    if not coupon.is_active:
        raise DomainError(ErrorKind.COUPON_INACTIVE, f"Coupon {code} is not active")
    if now < coupon.valid_from:
        raise DomainError(ErrorKind.COUPON_NOT_YET_VALID, f"Coupon {code} is not yet valid")
    if now > coupon.valid_until:
        raise DomainError(ErrorKind.COUPON_EXPIRED, f"Coupon {code} has expired")
    if coupon.usage_limit_total is not None and coupon.usage_count_total >= coupon.usage_limit_total:
        raise DomainError(ErrorKind.COUPON_EXHAUSTED, f"Coupon {code} usage limit exceeded")
    if user_id is not None and coupon.usage_for(user_id) >= coupon.usage_limit_per_user:
        raise DomainError(
            ErrorKind.COUPON_PER_USER_LIMIT_REACHED,
            f"You have already used coupon {code} the maximum number of times",
        )

    if cart_total is not None:
        cart_total = to_decimal(cart_total)
        if cart_total < to_decimal(coupon.min_order_value):
            raise DomainError(
                ErrorKind.COUPON_MIN_ORDER_NOT_MET,
                f"Minimum order value of {_money(coupon.min_order_value)} required for coupon {code}",
            )
        if coupon.max_order_value is not None and cart_total > to_decimal(coupon.max_order_value):
            raise DomainError(
                ErrorKind.COUPON_MAX_ORDER_EXCEEDED,
                f"Maximum order value of {_money(coupon.max_order_value)} exceeded for coupon {code}",
            )

    if user is not None:
        _check_eligibility(coupon, user, has_prior_orders)

    return ValidationResult(valid=True, message="Coupon is valid", coupon=coupon)


def _check_eligibility(coupon: Coupon, user, has_prior_orders: bool):
    code = coupon.code
    if coupon.specific_users and str(user.id) not in _ids(coupon.specific_users):
        raise DomainError(ErrorKind.COUPON_NOT_ELIGIBLE, f"Coupon {code} is not available for your account")
    if coupon.user_roles and (user.role or "").lower() not in {r.lower() for r in coupon.user_roles}:
        raise DomainError(ErrorKind.COUPON_NOT_ELIGIBLE, f"Coupon {code} is not available for your account type")
    if coupon.new_users_only and has_prior_orders:
        raise DomainError(ErrorKind.COUPON_NOT_ELIGIBLE, f"Coupon {code} is only valid on your first order")


def calculate_discount(coupon: Coupon, cart_total, cart_items: Iterable = ()) -> Decimal:
    items = list(cart_items)
    applicable = to_decimal(cart_total)
    only = _ids(coupon.applicable_products)
    excluded = _ids(coupon.excluded_products)

    def lines(pred):
        return sum(
            (to_decimal(it.unit_price) * int(it.quantity) for it in items if pred(str(it.product_id))),
            Decimal(0),
        )

    if only:
        applicable = lines(lambda pid: pid in only and pid not in excluded)
    elif excluded:
        applicable -= lines(lambda pid: pid in excluded)
    # TODO: narrow `applicable` by applicable_categories once line items carry the product category

    applicable = max(applicable, ZERO)
    if coupon.type == CouponType.PERCENTAGE:
        discount = percent_of(applicable, coupon.value)
        if coupon.max_discount is not None:
            discount = min(discount, to_decimal(coupon.max_discount))
    else:
        discount = min(to_decimal(coupon.value), applicable)

    return max(round2(discount), ZERO)


def record_usage(db: Session, coupon: Coupon, user_id: int):
    """
    Count one use of the coupon by the user.

    Both counters are bumped with conditional UPDATEs, so the total and per-user
    limits hold under concurrent checkouts. Raises DomainError when a limit was
    reached in the meantime; the caller's transaction must then be rolled back.
    """
    now = utcnow()
    bumped = db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(Coupon.usage_limit_total.is_(None), Coupon.usage_count_total < Coupon.usage_limit_total),
        )
        .values(usage_count_total=Coupon.usage_count_total + 1)
        .execution_options(synchronize_session=False)
    )
    if bumped.rowcount != 1:
        raise DomainError(ErrorKind.COUPON_EXHAUSTED, f"Coupon {coupon.code} usage limit exceeded")

    bumped = db.execute(
        update(CouponUsage)
        .where(
            CouponUsage.coupon_id == coupon.id,
            CouponUsage.user_id == user_id,
            CouponUsage.count < coupon.usage_limit_per_user,
        )
        .values(count=CouponUsage.count + 1, last_used=now)
        .execution_options(synchronize_session=False)
    )
    if bumped.rowcount == 1:
        return

    per_user_error = DomainError(
        ErrorKind.COUPON_PER_USER_LIMIT_REACHED,
        f"You have already used coupon {coupon.code} the maximum number of times",
    )
    existing = db.query(CouponUsage.id).filter(
        CouponUsage.coupon_id == coupon.id, CouponUsage.user_id == user_id
    ).first()
    if existing:
        raise per_user_error

    db.add(CouponUsage(coupon_id=coupon.id, user_id=user_id, count=1, last_used=now))
    try:
        db.flush()
    except IntegrityError as exc:
        # Another checkout by the same user created the row first
        raise per_user_error from exc
    logger.info("Coupon %s used by user %s", coupon.code, user_id)


def find_coupon(db: Session, code: str) -> Coupon:
    normalized = (code or "").strip().upper()
    coupon = db.query(Coupon).filter(Coupon.code == normalized).first()
    if not coupon:
        raise DomainError(ErrorKind.COUPON_NOT_FOUND, f"Coupon code {normalized} not found")
    return coupon


def has_prior_orders(db: Session, user_id: int) -> bool:
    return db.query(Order.id).filter(
        Order.user_id == user_id, Order.status != OrderStatus.CANCELLED
    ).first() is not None


def validate_for_user(db: Session, coupon: Coupon, user, cart_total, cart_items: Iterable = ()) -> ValidationResult:
    prior = coupon.new_users_only and has_prior_orders(db, user.id)
    return validate(coupon, user.id, cart_total, cart_items, user=user, has_prior_orders=prior)


def check_coupon(db: Session, code: str, user=None, cart_total=None) -> ValidationResult:
    """
    Display-only validation (GET /coupons/validate/{code}).

    Rule failures come back as valid=False instead of an error, only a missing
    coupon raises. Per-user checks run only when a user is known.
    """
    coupon = find_coupon(db, code)
    try:
        if user is not None:
            result = validate_for_user(db, coupon, user, cart_total)
        else:
            result = validate(coupon, None, cart_total)
    except DomainError as err:
        if err.kind not in COUPON_ERRORS:
            raise
        return ValidationResult(valid=False, message=err.message, coupon=coupon, error=err.kind.value)

    if cart_total is not None:
        total = round2(cart_total)
        result.discount = calculate_discount(coupon, total)
        result.final_total = round2(total - result.discount)
    return result


def list_available(db: Session, user) -> List[Coupon]:
    now = utcnow()
    candidates = db.query(Coupon).filter(
        Coupon.is_active == True,  # noqa: E712
        Coupon.valid_from <= now,
        Coupon.valid_until >= now,
    ).order_by(Coupon.valid_until.asc()).all()

    available = []
    prior = None
    for coupon in candidates:
        if coupon.new_users_only and prior is None:
            prior = has_prior_orders(db, user.id)
        try:
            validate(coupon, user.id, None, now=now, user=user, has_prior_orders=bool(prior))
        except DomainError:
            continue
        available.append(coupon)
    return available


def create_coupon(db: Session, data: dict, created_by: Optional[int] = None) -> Coupon:
    data = dict(data)
    data["code"] = data["code"].strip().upper()
    if db.query(Coupon.id).filter(Coupon.code == data["code"]).first():
        raise DomainError(ErrorKind.COUPON_ALREADY_EXISTS, f"Coupon code {data['code']} already exists")

    data["type"] = CouponType(data["type"])
    data["valid_from"] = as_naive_utc(data["valid_from"])
    data["valid_until"] = as_naive_utc(data["valid_until"])
    coupon = Coupon(**data, created_by=created_by)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    logger.info("Coupon %s created by user %s", coupon.code, created_by)
    return coupon


def set_active(db: Session, coupon_id: int, is_active: bool) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise DomainError(ErrorKind.COUPON_NOT_FOUND, f"Coupon {coupon_id} not found")
    coupon.is_active = is_active
    db.commit()
    db.refresh(coupon)
    return coupon
