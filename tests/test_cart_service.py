"""Tests for the cart service."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from models.cart import Cart
from models.coupon import CouponType
from services import cart as cart_service
from utils.errors import DomainError, ErrorKind


def entry(product_id, quantity):
    return SimpleNamespace(product_id=product_id, quantity=quantity)


def quantities(view):
    return {it.product_id: it.quantity for it in view.cart.items}


class TestGetOrCreate:
    def test_idempotent(self, db, customer):
        first = cart_service.get_or_create(db, customer.id)
        second = cart_service.get_or_create(db, customer.id)
        assert first.id == second.id
        assert db.query(Cart).filter_by(user_id=customer.id).count() == 1

    def test_empty_summary(self, db, customer):
        view = cart_service.get_cart(db, customer.id)
        assert view.cart.items == []
        assert view.summary.item_count == 0
        assert view.summary.total == Decimal("50.00")


class TestAddItem:
    def test_new_line_snapshots_price(self, db, customer, book):
        view = cart_service.add_item(db, customer.id, book.id, 2)
        assert quantities(view) == {book.id: 2}
        assert view.cart.items[0].unit_price == Decimal("300.00")
        assert view.summary.subtotal == Decimal("600.00")

    def test_add_is_additive(self, db, customer, book):
        cart_service.add_item(db, customer.id, book.id, 2)
        view = cart_service.add_item(db, customer.id, book.id, 1)
        assert quantities(view) == {book.id: 3}
        assert len(view.cart.items) == 1

    def test_re_add_refreshes_price(self, db, customer, book):
        cart_service.add_item(db, customer.id, book.id, 1)
        book.price = Decimal("320.00")
        db.commit()
        view = cart_service.add_item(db, customer.id, book.id, 1)
        assert view.cart.items[0].unit_price == Decimal("320.00")

    def test_unknown_product(self, db, customer):
        with pytest.raises(DomainError) as excinfo:
            cart_service.add_item(db, customer.id, 999, 1)
        assert excinfo.value.kind == ErrorKind.PRODUCT_NOT_FOUND

    def test_out_of_stock(self, db, customer, make_product):
        product = make_product(title="Chemistry Question Bank", stock=0, in_stock=False)
        with pytest.raises(DomainError) as excinfo:
            cart_service.add_item(db, customer.id, product.id, 1)
        assert excinfo.value.kind == ErrorKind.INSUFFICIENT_STOCK
        assert "Chemistry Question Bank" in excinfo.value.message

    def test_existing_plus_requested_over_stock(self, db, customer, make_product):
        product = make_product(stock=3)
        cart_service.add_item(db, customer.id, product.id, 2)
        with pytest.raises(DomainError) as excinfo:
            cart_service.add_item(db, customer.id, product.id, 2)
        assert excinfo.value.kind == ErrorKind.INSUFFICIENT_STOCK
        assert quantities(cart_service.get_cart(db, customer.id)) == {product.id: 2}


class TestUpdateAndRemove:
    def test_update_sets_quantity(self, db, customer, book):
        item_id = cart_service.add_item(db, customer.id, book.id, 1).cart.items[0].id
        view = cart_service.update_item(db, customer.id, item_id, 4)
        assert quantities(view) == {book.id: 4}

    def test_update_refreshes_price(self, db, customer, book):
        item_id = cart_service.add_item(db, customer.id, book.id, 1).cart.items[0].id
        book.price = Decimal("350.00")
        db.commit()
        view = cart_service.update_item(db, customer.id, item_id, 2)
        assert view.cart.items[0].unit_price == Decimal("350.00")
        assert view.summary.subtotal == Decimal("700.00")

    def test_update_to_zero_removes(self, db, customer, book):
        item_id = cart_service.add_item(db, customer.id, book.id, 1).cart.items[0].id
        view = cart_service.update_item(db, customer.id, item_id, 0)
        assert view.cart.items == []

    def test_update_over_stock(self, db, customer, book):
        item_id = cart_service.add_item(db, customer.id, book.id, 1).cart.items[0].id
        with pytest.raises(DomainError) as excinfo:
            cart_service.update_item(db, customer.id, item_id, 11)
        assert excinfo.value.kind == ErrorKind.INSUFFICIENT_STOCK

    def test_update_unknown_item(self, db, customer, book):
        cart_service.add_item(db, customer.id, book.id, 1)
        with pytest.raises(DomainError) as excinfo:
            cart_service.update_item(db, customer.id, 12345, 1)
        assert excinfo.value.kind == ErrorKind.CART_ITEM_NOT_FOUND

    def test_update_without_cart(self, db, customer):
        with pytest.raises(DomainError) as excinfo:
            cart_service.update_item(db, customer.id, 1, 1)
        assert excinfo.value.kind == ErrorKind.CART_NOT_FOUND

    def test_remove(self, db, customer, book, make_product):
        other = make_product(title="Science Class 10")
        cart_service.add_item(db, customer.id, book.id, 1)
        view = cart_service.add_item(db, customer.id, other.id, 1)
        item_id = next(it.id for it in view.cart.items if it.product_id == book.id)

        view = cart_service.remove_item(db, customer.id, item_id)
        assert quantities(view) == {other.id: 1}

    def test_remove_unknown_item(self, db, customer):
        cart_service.get_or_create(db, customer.id)
        with pytest.raises(DomainError) as excinfo:
            cart_service.remove_item(db, customer.id, 77)
        assert excinfo.value.kind == ErrorKind.CART_ITEM_NOT_FOUND


class TestSync:
    def test_replaces_and_drops_invalid(self, db, customer, make_product):
        a = make_product(title="A", stock=5)
        b = make_product(title="B", stock=1)
        c = make_product(title="C", stock=0, in_stock=False)
        cart_service.add_item(db, customer.id, a.id, 4)

        view = cart_service.sync(db, customer.id, [
            entry(a.id, 1),
            entry(b.id, 2),      # more than in stock
            entry(c.id, 1),      # out of stock
            entry(999, 1),       # unknown
        ])
        assert quantities(view) == {a.id: 1}

    def test_last_duplicate_wins(self, db, customer, book):
        view = cart_service.sync(db, customer.id, [entry(book.id, 1), entry(book.id, 3)])
        assert quantities(view) == {book.id: 3}

    def test_keeps_coupon(self, db, customer, book, make_coupon):
        make_coupon(code="FLAT50", type=CouponType.FIXED, value="50")
        cart_service.add_item(db, customer.id, book.id, 1)
        cart_service.apply_coupon(db, customer, "FLAT50")
        view = cart_service.sync(db, customer.id, [entry(book.id, 2)])
        assert view.cart.coupon_code == "FLAT50"


class TestMerge:
    def test_merge_is_max_not_sum(self, db, customer, book):
        cart_service.add_item(db, customer.id, book.id, 2)
        view = cart_service.merge(db, customer.id, [entry(book.id, 1)])
        assert quantities(view) == {book.id: 2}

    def test_merge_takes_larger_incoming(self, db, customer, book):
        cart_service.add_item(db, customer.id, book.id, 2)
        view = cart_service.merge(db, customer.id, [entry(book.id, 5)])
        assert quantities(view) == {book.id: 5}

    def test_merge_appends_valid_new_lines(self, db, customer, book, make_product):
        sold_out = make_product(title="Sold out", stock=0, in_stock=False)
        view = cart_service.merge(db, customer.id, [
            entry(book.id, 2),
            entry(sold_out.id, 1),
            entry(None, 1),
            entry(book.id, 0),
        ])
        assert quantities(view) == {book.id: 2}


class TestCoupon:
    def test_apply_stores_discount(self, db, customer, make_product, make_coupon):
        product = make_product(price="600")
        make_coupon(code="WELCOME50", type=CouponType.FIXED, value="50", min_order_value=Decimal("300"), new_users_only=True)
        cart_service.add_item(db, customer.id, product.id, 1)

        view = cart_service.apply_coupon(db, customer, "welcome50")
        assert view.cart.coupon_code == "WELCOME50"
        assert view.summary.discount == Decimal("50.00")
        assert view.summary.tax == Decimal("99.00")
        assert view.summary.total == Decimal("649.00")

    def test_apply_min_order_not_met(self, db, customer, make_product, make_coupon):
        product = make_product(price="100")
        make_coupon(min_order_value=Decimal("500"), max_discount=Decimal("100"))
        cart_service.add_item(db, customer.id, product.id, 1)
        with pytest.raises(DomainError) as excinfo:
            cart_service.apply_coupon(db, customer, "SAVE10")
        assert excinfo.value.kind == ErrorKind.COUPON_MIN_ORDER_NOT_MET
        assert cart_service.get_cart(db, customer.id).cart.coupon_code is None

    def test_apply_to_empty_cart(self, db, customer, make_coupon):
        make_coupon()
        with pytest.raises(DomainError) as excinfo:
            cart_service.apply_coupon(db, customer, "SAVE10")
        assert excinfo.value.kind == ErrorKind.EMPTY_CART

    def test_remove_coupon(self, db, customer, book, make_coupon):
        make_coupon()
        cart_service.add_item(db, customer.id, book.id, 1)
        cart_service.apply_coupon(db, customer, "SAVE10")
        view = cart_service.remove_coupon(db, customer.id)
        assert view.cart.coupon_code is None
        assert view.summary.discount == Decimal("0.00")

    def test_remove_when_none_applied(self, db, customer):
        cart_service.get_or_create(db, customer.id)
        with pytest.raises(DomainError) as excinfo:
            cart_service.remove_coupon(db, customer.id)
        assert excinfo.value.kind == ErrorKind.NO_COUPON_APPLIED

    def test_remove_without_cart(self, db, customer):
        with pytest.raises(DomainError) as excinfo:
            cart_service.remove_coupon(db, customer.id)
        assert excinfo.value.kind == ErrorKind.CART_NOT_FOUND


def test_clear_empties_items_and_coupon(db, customer, book, make_coupon):
    make_coupon()
    cart_service.add_item(db, customer.id, book.id, 1)
    cart_service.apply_coupon(db, customer, "SAVE10")

    view = cart_service.clear(db, customer.id)
    assert view.cart.items == []
    assert view.cart.coupon_code is None
    assert view.summary.subtotal == Decimal("0.00")
