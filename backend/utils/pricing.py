"""
Cart / order price summary.

compute_summary() is a pure function of the line items and the applied
discount; it is used for cart views, coupon previews and order placement.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal

from config import settings
from utils.money import round2, percent_of, to_decimal, ZERO

FREE_SHIPPING_THRESHOLD = settings.FREE_SHIPPING_THRESHOLD
SHIPPING_FEE = settings.SHIPPING_FEE
TAX_RATE = settings.TAX_RATE
CURRENCY = settings.CURRENCY


@dataclass(frozen=True)
class Summary:
    item_count: int
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    currency: str
    free_shipping_eligible: bool
    free_shipping_threshold: Decimal

    def as_dict(self):
        return asdict(self)


def line_total(unit_price, quantity) -> Decimal:
    return round2(to_decimal(unit_price) * int(quantity))


def items_subtotal(items) -> Decimal:
    # items: anything exposing unit_price and quantity (CartItem, OrderItem, LineInput)
    return round2(sum((to_decimal(it.unit_price) * int(it.quantity) for it in items), Decimal(0)))


def shipping_for(subtotal) -> Decimal:
    if to_decimal(subtotal) >= FREE_SHIPPING_THRESHOLD:
        return ZERO
    return round2(SHIPPING_FEE)


def summarize(subtotal, discount=0, item_count=0) -> Summary:
    subtotal = round2(subtotal)
    # Discount can never exceed what is being paid for
    discount = round2(min(max(to_decimal(discount), ZERO), subtotal))
    shipping = shipping_for(subtotal)
    tax = percent_of(subtotal - discount, TAX_RATE)
    total = round2(subtotal - discount + shipping + tax)
    return Summary(
        item_count=item_count,
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        discount=discount,
        total=total,
        currency=CURRENCY,
        free_shipping_eligible=subtotal >= FREE_SHIPPING_THRESHOLD,
        free_shipping_threshold=round2(FREE_SHIPPING_THRESHOLD),
    )


def compute_summary(items, discount=0) -> Summary:
    items = list(items)
    return summarize(
        items_subtotal(items),
        discount=discount,
        item_count=sum(int(it.quantity) for it in items),
    )
