"""Tests for coupon validation, discounts and usage accounting."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from models.coupon import Coupon, CouponType, CouponUsage
from models.order import Order, OrderStatus, PaymentMethod
from services import coupons
from utils.clock import utcnow
from utils.errors import DomainError, ErrorKind


def line(product_id, price, qty=1):
    return SimpleNamespace(product_id=product_id, unit_price=Decimal(price), quantity=qty)


def add_order(db, user, status=OrderStatus.PENDING):
    order = Order(
        order_number=f"RG-TEST-{user.id}-{status.value}",
        user_id=user.id,
        status=status,
        subtotal=Decimal("100"),
        total=Decimal("168"),
        shipping_address={"city": "Pune"},
        billing_address={"city": "Pune"},
        payment_method=PaymentMethod.COD,
    )
    db.add(order)
    db.commit()
    return order


def kind_of(excinfo):
    return excinfo.value.kind


class TestValidateOrder:
    def test_valid_coupon(self, make_coupon, customer):
        coupon = make_coupon(min_order_value=Decimal("500"))
        result = coupons.validate(coupon, customer.id, Decimal("800"))
        assert result.valid is True
        assert result.coupon is coupon

    def test_inactive_checked_first(self, make_coupon, customer):
        now = utcnow()
        coupon = make_coupon(is_active=False, valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=5))
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"))
        assert kind_of(excinfo) == ErrorKind.COUPON_INACTIVE

    def test_not_yet_valid(self, make_coupon, customer):
        now = utcnow()
        coupon = make_coupon(valid_from=now + timedelta(days=1), valid_until=now + timedelta(days=2))
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"))
        assert kind_of(excinfo) == ErrorKind.COUPON_NOT_YET_VALID

    def test_expired(self, make_coupon, customer):
        now = utcnow()
        coupon = make_coupon(valid_from=now - timedelta(days=3), valid_until=now - timedelta(days=1))
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"))
        assert kind_of(excinfo) == ErrorKind.COUPON_EXPIRED
        assert "SAVE10" in excinfo.value.message

    def test_exhausted(self, make_coupon, customer):
        coupon = make_coupon(usage_limit_total=5, usage_count_total=5)
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"))
        assert kind_of(excinfo) == ErrorKind.COUPON_EXHAUSTED

    def test_exhausted_before_min_order(self, make_coupon, customer):
        coupon = make_coupon(usage_limit_total=1, usage_count_total=1, min_order_value=Decimal("500"))
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"))
        assert kind_of(excinfo) == ErrorKind.COUPON_EXHAUSTED

    def test_min_order_not_met_names_threshold(self, make_coupon, customer):
        coupon = make_coupon(value="10", max_discount=Decimal("100"), min_order_value=Decimal("500"))
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"))
        assert kind_of(excinfo) == ErrorKind.COUPON_MIN_ORDER_NOT_MET
        assert "500" in excinfo.value.message

    def test_max_order_exceeded(self, make_coupon, customer):
        coupon = make_coupon(max_order_value=Decimal("1000"))
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("1000.01"))
        assert kind_of(excinfo) == ErrorKind.COUPON_MAX_ORDER_EXCEEDED

    def test_order_limits_skipped_without_total(self, make_coupon, customer):
        coupon = make_coupon(min_order_value=Decimal("500"))
        assert coupons.validate(coupon, customer.id, None).valid is True


class TestPerUserLimit:
    def test_second_use_rejected(self, db, make_coupon, customer):
        coupon = make_coupon(usage_limit_per_user=1)
        coupons.validate(coupon, customer.id, Decimal("100"))
        coupons.record_usage(db, coupon, customer.id)
        db.commit()
        db.refresh(coupon)

        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"))
        assert kind_of(excinfo) == ErrorKind.COUPON_PER_USER_LIMIT_REACHED

    def test_other_user_unaffected(self, db, make_coupon, customer, other_customer):
        coupon = make_coupon(usage_limit_per_user=1)
        coupons.record_usage(db, coupon, customer.id)
        db.commit()
        db.refresh(coupon)
        assert coupons.validate(coupon, other_customer.id, Decimal("100")).valid is True

    def test_anonymous_skips_per_user_check(self, db, make_coupon, customer):
        coupon = make_coupon(usage_limit_per_user=1)
        coupons.record_usage(db, coupon, customer.id)
        db.commit()
        db.refresh(coupon)
        assert coupons.validate(coupon, None, Decimal("100")).valid is True


class TestEligibility:
    def test_role_not_listed(self, make_coupon, customer):
        coupon = make_coupon(user_roles=["teacher"])
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"), user=customer)
        assert kind_of(excinfo) == ErrorKind.COUPON_NOT_ELIGIBLE

    def test_role_listed(self, make_coupon, customer):
        coupon = make_coupon(user_roles=["Student"])
        assert coupons.validate(coupon, customer.id, Decimal("100"), user=customer).valid is True

    def test_specific_users(self, make_coupon, customer, other_customer):
        coupon = make_coupon(specific_users=[other_customer.id])
        with pytest.raises(DomainError) as excinfo:
            coupons.validate(coupon, customer.id, Decimal("100"), user=customer)
        assert kind_of(excinfo) == ErrorKind.COUPON_NOT_ELIGIBLE
        assert coupons.validate(coupon, other_customer.id, Decimal("100"), user=other_customer).valid

    def test_new_users_only(self, db, make_coupon, customer):
        coupon = make_coupon(code="WELCOME50", type=CouponType.FIXED, value="50", new_users_only=True)
        assert coupons.validate_for_user(db, coupon, customer, Decimal("600")).valid is True

        add_order(db, customer)
        with pytest.raises(DomainError) as excinfo:
            coupons.validate_for_user(db, coupon, customer, Decimal("600"))
        assert kind_of(excinfo) == ErrorKind.COUPON_NOT_ELIGIBLE

    def test_cancelled_orders_do_not_count(self, db, make_coupon, customer):
        coupon = make_coupon(code="WELCOME50", type=CouponType.FIXED, value="50", new_users_only=True)
        add_order(db, customer, status=OrderStatus.CANCELLED)
        assert coupons.has_prior_orders(db, customer.id) is False
        assert coupons.validate_for_user(db, coupon, customer, Decimal("600")).valid is True


class TestCalculateDiscount:
    def test_percentage_capped(self, make_coupon):
        coupon = make_coupon(value="10", max_discount=Decimal("100"))
        assert coupons.calculate_discount(coupon, Decimal("2000")) == Decimal("100.00")

    def test_percentage_uncapped(self, make_coupon):
        coupon = make_coupon(value="15")
        assert coupons.calculate_discount(coupon, Decimal("333.33")) == Decimal("50.00")

    def test_fixed_never_exceeds_amount(self, make_coupon):
        coupon = make_coupon(code="FLAT50", type=CouponType.FIXED, value="50")
        assert coupons.calculate_discount(coupon, Decimal("30")) == Decimal("30.00")
        assert coupons.calculate_discount(coupon, Decimal("600")) == Decimal("50.00")

    def test_applicable_products_only(self, make_coupon):
        coupon = make_coupon(value="10", applicable_products=[1])
        items = [line(1, "200"), line(2, "100")]
        assert coupons.calculate_discount(coupon, Decimal("300"), items) == Decimal("20.00")

    def test_excluded_products(self, make_coupon):
        coupon = make_coupon(value="10", excluded_products=[2])
        items = [line(1, "200"), line(2, "100", qty=2)]
        assert coupons.calculate_discount(coupon, Decimal("400"), items) == Decimal("20.00")

    def test_no_matching_lines(self, make_coupon):
        coupon = make_coupon(code="FLAT50", type=CouponType.FIXED, value="50", applicable_products=[9])
        assert coupons.calculate_discount(coupon, Decimal("300"), [line(1, "300")]) == Decimal("0.00")

    def test_categories_do_not_change_amount(self, make_coupon):
        coupon = make_coupon(value="10", applicable_categories=["Science"])
        assert coupons.calculate_discount(coupon, Decimal("300"), [line(1, "300")]) == Decimal("30.00")


class TestRecordUsage:
    def test_counters_increment(self, db, make_coupon, customer):
        coupon = make_coupon(usage_limit_per_user=2)
        coupons.record_usage(db, coupon, customer.id)
        coupons.record_usage(db, coupon, customer.id)
        db.commit()
        db.refresh(coupon)

        assert coupon.usage_count_total == 2
        usage = db.query(CouponUsage).filter_by(coupon_id=coupon.id, user_id=customer.id).one()
        assert usage.count == 2
        assert coupon.usage_for(customer.id) == 2

    def test_total_limit_is_conditional(self, db, make_coupon, customer, other_customer):
        coupon = make_coupon(usage_limit_total=1)
        coupons.record_usage(db, coupon, customer.id)
        with pytest.raises(DomainError) as excinfo:
            coupons.record_usage(db, coupon, other_customer.id)
        assert kind_of(excinfo) == ErrorKind.COUPON_EXHAUSTED

    def test_per_user_limit_is_conditional(self, db, make_coupon, customer):
        coupon = make_coupon(usage_limit_per_user=1)
        coupons.record_usage(db, coupon, customer.id)
        with pytest.raises(DomainError) as excinfo:
            coupons.record_usage(db, coupon, customer.id)
        assert kind_of(excinfo) == ErrorKind.COUPON_PER_USER_LIMIT_REACHED


class TestLookupAndPreview:
    def test_find_is_case_insensitive(self, make_coupon, db):
        coupon = make_coupon()
        assert coupons.find_coupon(db, " save10 ").id == coupon.id

    def test_find_missing(self, db):
        with pytest.raises(DomainError) as excinfo:
            coupons.find_coupon(db, "NOPE")
        assert kind_of(excinfo) == ErrorKind.COUPON_NOT_FOUND

    def test_check_reports_rule_failure(self, db, make_coupon):
        make_coupon(min_order_value=Decimal("500"), max_discount=Decimal("100"))
        result = coupons.check_coupon(db, "SAVE10", None, Decimal("100"))
        assert result.valid is False
        assert result.error == "COUPON_MIN_ORDER_NOT_MET"

    def test_check_computes_discount(self, db, make_coupon, customer):
        make_coupon(min_order_value=Decimal("500"), max_discount=Decimal("100"))
        result = coupons.check_coupon(db, "save10", customer, Decimal("800"))
        assert result.valid is True
        assert result.discount == Decimal("80.00")
        assert result.final_total == Decimal("720.00")

    def test_available_for_user(self, db, make_coupon, customer):
        now = utcnow()
        make_coupon(code="OPEN10")
        make_coupon(code="TEACH5", user_roles=["teacher"])
        make_coupon(code="OLD5", valid_from=now - timedelta(days=9), valid_until=now - timedelta(days=1))
        make_coupon(code="OFF5", is_active=False)

        codes = [c.code for c in coupons.list_available(db, customer)]
        assert codes == ["OPEN10"]


class TestAdminOperations:
    def test_create_normalizes(self, db, admin):
        data = dict(
            code="diwali20",
            name="Diwali",
            description=None,
            type="percentage",
            value=Decimal("20"),
            valid_from=datetime(2026, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30))),
            valid_until=datetime(2026, 12, 31),
        )
        coupon = coupons.create_coupon(db, data, created_by=admin.id)
        assert coupon.code == "DIWALI20"
        assert coupon.type == CouponType.PERCENTAGE
        assert coupon.valid_from == datetime(2026, 1, 1, 0, 0)
        assert coupon.usage_count_total == 0

    def test_create_duplicate(self, db, make_coupon):
        make_coupon()
        now = utcnow()
        data = dict(code="SAVE10", name="dup", type="fixed", value=Decimal("5"),
                    valid_from=now, valid_until=now + timedelta(days=1))
        with pytest.raises(DomainError) as excinfo:
            coupons.create_coupon(db, data)
        assert kind_of(excinfo) == ErrorKind.COUPON_ALREADY_EXISTS

    def test_set_active(self, db, make_coupon):
        coupon = make_coupon()
        assert coupons.set_active(db, coupon.id, False).is_active is False
        assert coupon.status == "inactive"


class TestCouponModel:
    def test_status(self, make_coupon):
        now = utcnow()
        assert make_coupon(code="A1A").status == "active"
        assert make_coupon(code="B2B", usage_limit_total=2, usage_count_total=2).status == "exhausted"
        assert make_coupon(code="C3C", valid_from=now + timedelta(days=1),
                           valid_until=now + timedelta(days=2)).status == "not_started"

    def test_discount_display(self, make_coupon):
        assert make_coupon(code="PCT", value="10").discount_display == "10% OFF"
        assert make_coupon(code="FIX", type=CouponType.FIXED, value="50").discount_display == "₹50 OFF"
        assert isinstance(make_coupon(code="X12"), Coupon)
