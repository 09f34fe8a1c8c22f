"""
Seed a development database with books, two accounts and the launch coupons.

    python populate_db.py

Safe to run repeatedly: rows that already exist (by code / email) are skipped.
"""
import logging
import os
import sys
from datetime import timedelta
from decimal import Decimal

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.users import User
from models.product import Product
from models.coupon import Coupon, CouponType
from utils.clock import utcnow
from utils.hashing import get_password_hash

logger = logging.getLogger("populate_db")

# Configuration
DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "password123")

BOOKS = [
    # code, title, subject, price, stock
    ("RG-MATH-10", "Mathematics Class 10 Guide", "Mathematics", "299.00", 40),
    ("RG-SCI-10", "Science Class 10 Guide", "Science", "349.00", 35),
    ("RG-ENG-10", "English Grammar Workbook", "English", "199.00", 60),
    ("RG-PHY-12", "Physics Class 12 Question Bank", "Physics", "449.00", 20),
    ("RG-CHEM-12", "Chemistry Class 12 Question Bank", "Chemistry", "429.00", 0),
    ("RG-BIO-11", "Biology Class 11 Notes", "Biology", "249.00", 15),
]

USERS = [
    ("admin@example.com", "admin", "Store", "Admin"),
    ("student@example.com", "student", "Asha", "Verma"),
]


def _coupons(now):
    return [
        dict(
            code="SAVE10", name="Save 10%", description="10% off orders above ₹500, up to ₹200",
            type=CouponType.PERCENTAGE, value=Decimal("10"), max_discount=Decimal("200"),
            min_order_value=Decimal("500"), usage_limit_total=1000, usage_limit_per_user=3,
            valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=90),
        ),
        dict(
            code="WELCOME50", name="Welcome offer", description="₹50 off your first order",
            type=CouponType.FIXED, value=Decimal("50"), min_order_value=Decimal("200"),
            usage_limit_per_user=1, new_users_only=True,
            valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=365),
        ),
        dict(
            code="STUDENT15", name="Student discount", description="15% off for students, up to ₹150",
            type=CouponType.PERCENTAGE, value=Decimal("15"), max_discount=Decimal("150"),
            min_order_value=Decimal("300"), usage_limit_per_user=5, user_roles=["student"],
            valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=180),
        ),
    ]


def seed(session):
    created = {"users": 0, "products": 0, "coupons": 0}

    for email, role, first_name, last_name in USERS:
        if session.query(User).filter(User.email == email).first():
            continue
        session.add(User(
            email=email,
            password_hash=get_password_hash(DEFAULT_PASSWORD),
            role=role,
            first_name=first_name,
            last_name=last_name,
        ))
        created["users"] += 1
    session.flush()
    admin = session.query(User).filter(User.role == "admin").first()

    for code, title, subject, price, stock in BOOKS:
        if session.query(Product).filter(Product.code == code).first():
            continue
        session.add(Product(
            code=code,
            title=title,
            category=subject,
            description=f"{title} for CBSE students",
            price=Decimal(price),
            stock_quantity=stock,
            in_stock=stock > 0,
        ))
        created["products"] += 1

    for data in _coupons(utcnow()):
        if session.query(Coupon).filter(Coupon.code == data["code"]).first():
            continue
        session.add(Coupon(**data, created_by=admin.id if admin else None))
        created["coupons"] += 1

    session.commit()
    return created


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    init_db()
    session = SessionLocal()
    try:
        created = seed(session)
    except Exception:
        session.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        session.close()
    logger.info("Seeded %(users)s users, %(products)s products, %(coupons)s coupons", created)


if __name__ == "__main__":
    main()
