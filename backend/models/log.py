from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from database import Base

# Audit entry for a cart, coupon or order action (CART_ADD, ORDER_CREATE, ...)
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime, server_default=func.now(), index=True)

    # Who did what to which record
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(50), index=True)
    resource = Column(String(50), index=True) # cart / coupons / orders
    resource_id = Column(String(64), nullable=True)
    status = Column(String(20), index=True) # SUCCESS / FAIL
    ip = Column(String(64), nullable=True)

    # Amounts, quantities, error kinds
    meta = Column(JSON, nullable=True)
