from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, JSON, Enum,
    UniqueConstraint, CheckConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base
from utils.clock import utcnow
from decimal import Decimal
import enum

# Discount kinds supported by coupons
class CouponType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

# Admin-defined discount rule with eligibility and usage limits
class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, index=True) # Uppercase A-Z0-9, 3-20 chars
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)

    type = Column(Enum(CouponType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    value = Column(Numeric(12, 2), CheckConstraint("value >= 0"), nullable=False)
    max_discount = Column(Numeric(12, 2), nullable=True) # Cap for percentage coupons
    min_order_value = Column(Numeric(12, 2), nullable=False, default=0)
    max_order_value = Column(Numeric(12, 2), nullable=True)

    # Usage limits and the global counter (per-user counters live in coupon_usages)
    usage_limit_total = Column(Integer, nullable=True)
    usage_limit_per_user = Column(Integer, nullable=False, default=1)
    usage_count_total = Column(Integer, nullable=False, default=0)

    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False, index=True)

    # Optional filters, lists of ids / names
    applicable_products = Column(JSON, nullable=False, default=list)
    applicable_categories = Column(JSON, nullable=False, default=list)
    excluded_products = Column(JSON, nullable=False, default=list)

    # User eligibility
    new_users_only = Column(Boolean, nullable=False, default=False)
    specific_users = Column(JSON, nullable=False, default=list)
    user_roles = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    usages = relationship("CouponUsage", back_populates="coupon", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "usage_limit_total IS NULL OR usage_count_total <= usage_limit_total",
            name="ck_coupon_usage_within_limit",
        ),
    )

    # Current status computed from the clock and counters, never persisted
    def status_at(self, now):
        if not self.is_active:
            return "inactive"
        if now < self.valid_from:
            return "not_started"
        if now > self.valid_until:
            return "expired"
        if self.usage_limit_total is not None and self.usage_count_total >= self.usage_limit_total:
            return "exhausted"
        return "active"

    @property
    def status(self):
        return self.status_at(utcnow())

    @property
    def discount_display(self):
        value = Decimal(str(self.value)).normalize()
        if self.type == CouponType.PERCENTAGE:
            return f"{value:f}% OFF"
        return f"₹{value:f} OFF"

    def usage_for(self, user_id):
        return next((u.count for u in self.usages if u.user_id == user_id), 0)


# Per-user usage counter for a coupon
class CouponUsage(Base):
    __tablename__ = "coupon_usages"

    id = Column(Integer, primary_key=True, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    count = Column(Integer, nullable=False, default=0)
    last_used = Column(DateTime, nullable=False, default=utcnow)

    coupon = relationship("Coupon", back_populates="usages")

    __table_args__ = (
        UniqueConstraint("coupon_id", "user_id", name="uq_coupon_usage_user"),
    )
