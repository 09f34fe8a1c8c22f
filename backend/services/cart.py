"""
Server-side shopping cart, one per user.

Every mutating call commits and returns a fresh CartView. The summary is never
stored; it is recomputed from the lines and the applied coupon on each read.
"""
import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.cart import Cart, CartItem
from models.product import Product
from services import coupons
from services.inventory import find_product, find_products, has_stock
from utils.errors import DomainError, ErrorKind
from utils.money import round2
from utils.pricing import Summary, compute_summary, items_subtotal

logger = logging.getLogger(__name__)


@dataclass
class CartView:
    cart: Cart
    summary: Summary


def _insufficient(product: Product) -> DomainError:
    return DomainError(
        ErrorKind.INSUFFICIENT_STOCK,
        f"Insufficient stock for {product.title}",
        [{"product_id": product.id, "available": product.stock_quantity if product.in_stock else 0}],
    )


def get_or_create(db: Session, user_id: int) -> Cart:
    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if cart:
        return cart

    cart = Cart(user_id=user_id)
    db.add(cart)
    try:
        db.commit()
    except IntegrityError:
        # A parallel request created the cart first
        db.rollback()
        return db.query(Cart).filter(Cart.user_id == user_id).one()
    db.refresh(cart)
    return cart


def _find_cart(db: Session, user_id: int) -> Cart:
    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if not cart:
        raise DomainError(ErrorKind.CART_NOT_FOUND, "Cart not found")
    return cart


def _find_item(cart: Cart, item_id: int) -> CartItem:
    for item in cart.items:
        if item.id == item_id:
            return item
    raise DomainError(ErrorKind.CART_ITEM_NOT_FOUND, "Cart item not found")


def view(cart: Cart) -> CartView:
    return CartView(cart=cart, summary=compute_summary(cart.items, cart.applied_discount))


def _save(db: Session, cart: Cart) -> CartView:
    db.commit()
    db.refresh(cart)
    return view(cart)


def _bump_quantity(db: Session, cart_id: int, product: Product, quantity: int) -> bool:
    # quantity = quantity + :q in one statement, refused when it would pass the stock
    result = db.execute(
        update(CartItem)
        .where(
            CartItem.cart_id == cart_id,
            CartItem.product_id == product.id,
            CartItem.quantity + quantity <= product.stock_quantity,
        )
        .values(quantity=CartItem.quantity + quantity, unit_price=product.price)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def get_cart(db: Session, user_id: int) -> CartView:
    return view(get_or_create(db, user_id))


def add_item(db: Session, user_id: int, product_id: int, quantity: int) -> CartView:
    product = find_product(db, product_id)
    if not product:
        raise DomainError(ErrorKind.PRODUCT_NOT_FOUND, "Product not found")
    if not has_stock(product, quantity):
        raise _insufficient(product)

    cart = get_or_create(db, user_id)
    if not _bump_quantity(db, cart.id, product, quantity):
        existing = db.query(CartItem.id).filter(
            CartItem.cart_id == cart.id, CartItem.product_id == product.id
        ).first()
        if existing:
            # Line exists but existing + requested is more than we have
            raise _insufficient(product)

        db.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity, unit_price=product.price))
        try:
            db.flush()
        except IntegrityError:
            # Someone inserted the same line concurrently, add on top of it
            db.rollback()
            if not _bump_quantity(db, cart.id, product, quantity):
                raise _insufficient(product)

    db.expire(cart)
    return _save(db, cart)


def update_item(db: Session, user_id: int, item_id: int, quantity: int) -> CartView:
    cart = _find_cart(db, user_id)
    item = _find_item(cart, item_id)

    if quantity <= 0:
        cart.items.remove(item)
        return _save(db, cart)

    product = find_product(db, item.product_id)
    if not has_stock(product, quantity):
        if product is None:
            raise DomainError(ErrorKind.INSUFFICIENT_STOCK, "Insufficient stock available")
        raise _insufficient(product)

    item.quantity = quantity
    item.unit_price = round2(product.price)
    return _save(db, cart)


def remove_item(db: Session, user_id: int, item_id: int) -> CartView:
    cart = _find_cart(db, user_id)
    cart.items.remove(_find_item(cart, item_id))
    return _save(db, cart)


def sync(db: Session, user_id: int, items: Iterable) -> CartView:
    """
    Replace the cart with the client's copy (e.g. after login).

    Entries for unknown, out-of-stock or over-stock products are dropped.
    A repeated product keeps its last quantity.
    """
    wanted = {}
    for entry in items:
        wanted[entry.product_id] = entry.quantity

    cart = get_or_create(db, user_id)
    cart.items.clear()
    # Old lines must be gone before the same products are inserted again
    db.flush()

    products = find_products(db, wanted.keys())
    for product_id, quantity in wanted.items():
        product = products.get(product_id)
        if quantity is None or quantity < 1 or not has_stock(product, quantity):
            logger.warning("Cart sync for user %s dropped product %s x%s", user_id, product_id, quantity)
            continue
        cart.items.append(CartItem(product_id=product.id, quantity=quantity, unit_price=product.price))

    return _save(db, cart)


def merge(db: Session, user_id: int, items: Iterable) -> CartView:
    """Fold a guest cart into the stored one, keeping the larger quantity per product."""
    incoming = [e for e in items if e.product_id is not None and e.quantity is not None and e.quantity >= 1]

    cart = get_or_create(db, user_id)
    products = find_products(db, [e.product_id for e in incoming])
    lines = {item.product_id: item for item in cart.items}

    for entry in incoming:
        product = products.get(entry.product_id)
        line = lines.get(entry.product_id)
        if line is not None:
            line.quantity = max(line.quantity, entry.quantity)
            if product is not None:
                line.unit_price = product.price
        elif product is not None and product.in_stock:
            line = CartItem(product_id=product.id, quantity=entry.quantity, unit_price=product.price)
            cart.items.append(line)
            lines[product.id] = line

    return _save(db, cart)


def set_coupon(cart: Cart, code, discount, description):
    cart.coupon_code = code
    cart.coupon_discount = round2(discount) if code else None
    cart.coupon_description = description if code else None


def apply_coupon(db: Session, user, code: str) -> CartView:
    cart = get_or_create(db, user.id)
    if not cart.items:
        raise DomainError(ErrorKind.EMPTY_CART, "Cannot apply a coupon to an empty cart")

    coupon = coupons.find_coupon(db, code)
    subtotal = items_subtotal(cart.items)
    coupons.validate_for_user(db, coupon, user, subtotal, cart.items)
    discount = coupons.calculate_discount(coupon, subtotal, cart.items)

    set_coupon(cart, coupon.code, discount, coupon.description or coupon.name)
    return _save(db, cart)


def remove_coupon(db: Session, user_id: int) -> CartView:
    cart = _find_cart(db, user_id)
    if not cart.coupon_code:
        raise DomainError(ErrorKind.NO_COUPON_APPLIED, "No coupon applied to cart")
    set_coupon(cart, None, None, None)
    return _save(db, cart)


def clear_cart(cart: Cart):
    cart.items.clear()
    set_coupon(cart, None, None, None)


def clear(db: Session, user_id: int) -> CartView:
    cart = get_or_create(db, user_id)
    clear_cart(cart)
    return _save(db, cart)
