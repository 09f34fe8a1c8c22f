"""Pytest fixtures for the storefront checkout tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.users  # noqa: F401
import models.product  # noqa: F401
import models.cart  # noqa: F401
import models.coupon  # noqa: F401
import models.order  # noqa: F401
import models.log  # noqa: F401
from models.users import User
from models.product import Product
from models.coupon import Coupon, CouponType
from utils.clock import utcnow
from utils.tokenJWT import token_for


@pytest.fixture
def engine():
    """In-memory SQLite shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """API client whose requests use the test session."""
    from main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _user(db, email, role):
    user = User(email=email, password_hash="not-a-real-hash", role=role, first_name="Test", last_name="User")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    return _user(db, "student@example.com", "student")


@pytest.fixture
def other_customer(db):
    return _user(db, "parent@example.com", "parent")


@pytest.fixture
def admin(db):
    return _user(db, "admin@example.com", "admin")


@pytest.fixture
def auth_headers(customer):
    return {"Authorization": f"Bearer {token_for(customer)}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {token_for(admin)}"}


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(title="Mathematics Class 10", price="300.00", stock=10, in_stock=True, category="Mathematics"):
        counter["n"] += 1
        product = Product(
            title=title,
            code=f"BOOK-{counter['n']:03d}",
            category=category,
            price=Decimal(price),
            stock_quantity=stock,
            in_stock=in_stock,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def book(make_product):
    return make_product()


@pytest.fixture
def make_coupon(db):
    """Coupon factory; valid since yesterday, for a month, unless overridden."""

    def _make(code="SAVE10", type=CouponType.PERCENTAGE, value="10", **overrides):
        now = utcnow()
        data = dict(
            code=code,
            name=f"{code} offer",
            description=f"{code} discount",
            type=type,
            value=Decimal(value),
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=30),
        )
        data.update(overrides)
        coupon = Coupon(**data)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def address():
    return {
        "first_name": "Asha",
        "last_name": "Verma",
        "email": "asha@example.com",
        "phone": "9876543210",
        "address_line1": "12 MG Road",
        "city": "Pune",
        "state": "Maharashtra",
        "postal_code": "411001",
    }
