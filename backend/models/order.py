from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, JSON, Enum, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base
from utils.clock import utcnow
import enum

# Order lifecycle: pending -> confirmed -> processing -> shipped -> delivered, or cancelled
class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class PaymentMethod(str, enum.Enum):
    RAZORPAY = "razorpay"
    COD = "cod"
    BANK_TRANSFER = "bank_transfer"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

def _enum(cls):
    return Enum(cls, values_callable=lambda e: [m.value for m in e])

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(_enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)

    # Price summary snapshot
    subtotal = Column(Numeric(12, 2), CheckConstraint("subtotal >= 0"), nullable=False)
    shipping = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), CheckConstraint("total >= 0"), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    coupon_code = Column(String, nullable=True)

    # Address snapshots (firstName, lastName, addressLine1, city, ...)
    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)

    # Payment details
    payment_method = Column(_enum(PaymentMethod), nullable=False)
    payment_status = Column(_enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)

    # Client supplied key guarding against duplicate placement on retry
    idempotency_key = Column(String(128), nullable=True)

    # Fulfilment details
    notes = Column(String, nullable=True)
    tracking_number = Column(String, nullable=True)
    carrier = Column(String, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    timeline = relationship(
        "OrderTimelineEntry", back_populates="order", cascade="all, delete-orphan", order_by="OrderTimelineEntry.id"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_order_user_idempotency_key"),
    )

# Snapshotted order line, never re-derived from the catalog
class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    title = Column(String, nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False)
    unit_price = Column(Numeric(12, 2), CheckConstraint("unit_price >= 0"), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")

# Append-only status history
class OrderTimelineEntry(Base):
    __tablename__ = "order_timeline"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(_enum(OrderStatus), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    description = Column(String, nullable=True)

    order = relationship("Order", back_populates="timeline")
