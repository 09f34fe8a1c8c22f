"""
Order placement and the order status lifecycle.

place_order() validates everything it can up front, then creates the order,
decrements stock, empties the cart and records coupon usage inside one
database transaction. Any failure in that block rolls all of it back.
"""
import logging
import math
import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from database import transaction
from models.cart import Cart
from models.order import Order, OrderItem, OrderTimelineEntry, OrderStatus, PaymentMethod, PaymentStatus
from services import coupons
from services.cart import clear_cart
from services.inventory import find_products, has_stock, decrement_stock
from utils.clock import utcnow
from utils.errors import DomainError, ErrorKind
from utils.money import round2, to_decimal, to_paise
from utils.pricing import line_total, summarize

logger = logging.getLogger(__name__)

# Fresh order numbers tried before placement gives up
ORDER_NUMBER_ATTEMPTS = 5

STATUS_DESCRIPTIONS = {
    OrderStatus.PENDING: "Order placed",
    OrderStatus.CONFIRMED: "Payment confirmed",
    OrderStatus.PROCESSING: "Order being prepared",
    OrderStatus.SHIPPED: "Order shipped",
    OrderStatus.DELIVERED: "Order delivered",
    OrderStatus.CANCELLED: "Order cancelled",
}

# Allowed next states; delivered and cancelled are terminal
TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


@dataclass
class LineInput:
    product_id: int
    quantity: int
    unit_price: Optional[object] = None


@dataclass
class PricedLine:
    product_id: int
    title: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    def to_item(self) -> OrderItem:
        return OrderItem(
            product_id=self.product_id,
            title=self.title,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total_price=self.total_price,
        )


@dataclass
class PlacedOrder:
    order: Order
    payment_details: dict
    created: bool = True


def generate_order_number(now: Optional[datetime] = None) -> str:
    # Last 6 digits of the epoch millis plus a random 3 digit suffix;
    # the unique column catches the rare clash and placement retries
    now = now or utcnow()
    millis = time.time_ns() // 1_000_000
    return f"RG-{now.year}-{millis % 10**6:06d}{random.randint(0, 999):03d}"


def payment_details(order: Order) -> dict:
    # Gateway stub, no payment provider is called here
    if order.payment_method == PaymentMethod.RAZORPAY:
        return {
            "razorpay_order_id": f"order_razorpay_{order.order_number}",
            "amount": to_paise(order.total),
            "currency": order.currency,
        }
    return {}


def _find_by_key(db: Session, user_id: int, idempotency_key: Optional[str]) -> Optional[Order]:
    if not idempotency_key:
        return None
    return db.query(Order).filter(
        Order.user_id == user_id, Order.idempotency_key == idempotency_key
    ).first()


def _number_taken(db: Session, order_number: str) -> bool:
    return db.query(Order.id).filter(Order.order_number == order_number).first() is not None


def _snapshot_lines(db: Session, items: List[LineInput]) -> List[PricedLine]:
    products = find_products(db, [it.product_id for it in items])

    missing = [it.product_id for it in items if it.product_id not in products]
    if missing:
        raise DomainError(
            ErrorKind.INVALID_PRODUCT,
            "One or more products could not be found",
            [{"product_id": pid} for pid in missing],
        )

    for it in items:
        product = products[it.product_id]
        if not has_stock(product, it.quantity):
            raise DomainError(
                ErrorKind.INSUFFICIENT_STOCK,
                f"Insufficient stock for {product.title}",
                [{"product_id": product.id, "requested": it.quantity, "available": product.stock_quantity}],
            )

    lines = []
    for it in items:
        product = products[it.product_id]
        if settings.TRUST_CLIENT_PRICES and it.unit_price is not None:
            unit_price = round2(it.unit_price)
        else:
            unit_price = round2(product.price)
        lines.append(PricedLine(
            product_id=product.id,
            title=product.title,
            quantity=it.quantity,
            unit_price=unit_price,
            total_price=line_total(unit_price, it.quantity),
        ))
    return lines


def _commit_order(db: Session, order: Order, lines: List[PricedLine], user_id: int, coupon):
    with transaction(db):
        db.add(order)
        db.flush()

        for line in lines:
            if not decrement_stock(db, line.product_id, line.quantity):
                raise DomainError(
                    ErrorKind.INSUFFICIENT_STOCK,
                    f"Insufficient stock for {line.title}",
                    [{"product_id": line.product_id, "requested": line.quantity}],
                )

        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if cart:
            clear_cart(cart)

        if coupon:
            coupons.record_usage(db, coupon, user_id)


def place_order(db: Session, user, items: List[LineInput], shipping_address: dict,
                billing_address: Optional[dict], payment_method, coupon_code: Optional[str] = None,
                idempotency_key: Optional[str] = None, notes: Optional[str] = None) -> PlacedOrder:
    """
    Turn the requested lines into a pending order.

    A repeated call with the same idempotency key returns the order created by
    the first call (created=False) without touching stock or coupons again.
    """
    user_id = user.id
    existing = _find_by_key(db, user_id, idempotency_key)
    if existing:
        return PlacedOrder(order=existing, payment_details=payment_details(existing), created=False)

    if not items:
        raise DomainError(ErrorKind.EMPTY_ORDER, "Order must contain at least one item")

    lines = _snapshot_lines(db, items)
    subtotal = round2(sum((to_decimal(line.total_price) for line in lines), to_decimal(0)))

    coupon = None
    discount = 0
    if coupon_code:
        coupon = coupons.find_coupon(db, coupon_code)
        coupons.validate_for_user(db, coupon, user, subtotal, lines)
        discount = coupons.calculate_discount(coupon, subtotal, lines)

    summary = summarize(subtotal, discount=discount, item_count=sum(line.quantity for line in lines))
    coupon_applied = coupon.code if coupon else None
    now = utcnow()

    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        order_number = generate_order_number(now)
        order = Order(
            order_number=order_number,
            user_id=user_id,
            status=OrderStatus.PENDING,
            subtotal=summary.subtotal,
            shipping=summary.shipping,
            tax=summary.tax,
            discount=summary.discount,
            total=summary.total,
            currency=summary.currency,
            coupon_code=coupon_applied,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            payment_method=PaymentMethod(payment_method),
            payment_status=PaymentStatus.PENDING,
            idempotency_key=idempotency_key,
            notes=notes,
            estimated_delivery=now + timedelta(days=settings.ESTIMATED_DELIVERY_DAYS),
            items=[line.to_item() for line in lines],
            timeline=[OrderTimelineEntry(
                status=OrderStatus.PENDING, timestamp=now, description=STATUS_DESCRIPTIONS[OrderStatus.PENDING]
            )],
        )

        try:
            _commit_order(db, order, lines, user_id, coupon)
        except IntegrityError as exc:
            # Same idempotency key placed concurrently, hand back the winner
            existing = _find_by_key(db, user_id, idempotency_key)
            if existing:
                return PlacedOrder(order=existing, payment_details=payment_details(existing), created=False)
            if attempt < ORDER_NUMBER_ATTEMPTS and _number_taken(db, order_number):
                logger.warning("Order number %s already taken, retrying (attempt %s)", order_number, attempt)
                continue
            logger.exception("Order placement failed for user %s", user_id)
            raise DomainError(ErrorKind.INTERNAL_ERROR, "Failed to create order") from exc
        break

    db.refresh(order)
    logger.info("Order %s placed by user %s, total %s %s", order.order_number, user_id, order.total, order.currency)
    return PlacedOrder(order=order, payment_details=payment_details(order))


def can_transition(current, new_status) -> bool:
    return OrderStatus(new_status) in TRANSITIONS[OrderStatus(current)]


def transition(order: Order, new_status, description: Optional[str] = None, now: Optional[datetime] = None) -> Order:
    new_status = OrderStatus(new_status)
    current = OrderStatus(order.status)
    if not can_transition(current, new_status):
        raise DomainError(
            ErrorKind.INVALID_STATUS_TRANSITION,
            f"Cannot change order status from {current.value} to {new_status.value}",
        )

    now = now or utcnow()
    order.status = new_status
    order.timeline.append(OrderTimelineEntry(
        status=new_status, timestamp=now, description=description or STATUS_DESCRIPTIONS[new_status]
    ))
    if new_status == OrderStatus.DELIVERED:
        order.delivered_at = now
    return order


def change_status(db: Session, order_id: int, new_status, description: Optional[str] = None,
                  tracking_number: Optional[str] = None, carrier: Optional[str] = None,
                  notes: Optional[str] = None) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise DomainError(ErrorKind.ORDER_NOT_FOUND, "Order not found")

    transition(order, new_status, description)
    if notes:
        order.notes = notes
    # Tracking is only recorded as a pair
    if tracking_number and carrier:
        order.tracking_number = tracking_number
        order.carrier = carrier

    db.commit()
    db.refresh(order)
    return order


def get_order(db: Session, order_id: int, user) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    # Someone else's order looks exactly like a missing one
    if not order or (order.user_id != user.id and user.role != "admin"):
        raise DomainError(ErrorKind.ORDER_NOT_FOUND, "Order not found")
    return order


def list_orders(db: Session, user_id: int, status=None, page: int = 1, page_size: int = 10) -> dict:
    q = db.query(Order).filter(Order.user_id == user_id)
    if status:
        q = q.filter(Order.status == OrderStatus(status))

    total = q.count()
    rows = (
        q.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    total_pages = math.ceil(total / page_size) if page_size else 0
    return {
        "items": rows,
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_items": total,
            "items_per_page": page_size,
            "has_next_page": page < total_pages,
            "has_previous_page": page > 1,
        },
    }
