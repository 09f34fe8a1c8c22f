# backend/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, Boolean, CheckConstraint
from database import Base

# Catalog entry (a book). Owned by the catalog; the checkout only reads it
# and decrements stock_quantity when an order is placed.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    code = Column(String, unique=True, nullable=False, index=True)

    description = Column(String)
    category = Column(String, index=True) # subject, e.g. Mathematics

    price = Column(Numeric(12, 2), CheckConstraint("price >= 0"), nullable=False)

    # Stock data
    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=False, default=0)
    in_stock = Column(Boolean, nullable=False, default=True)

    image_url = Column(String, nullable=True)
