# Catalog lookups and the guarded stock decrement used by checkout
from typing import Dict, Iterable, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from models.product import Product


def find_product(db: Session, product_id) -> Optional[Product]:
    return db.query(Product).filter(Product.id == product_id).first()


def find_products(db: Session, product_ids: Iterable) -> Dict[int, Product]:
    ids = {pid for pid in product_ids if pid is not None}
    if not ids:
        return {}
    rows = db.query(Product).filter(Product.id.in_(ids)).all()
    return {p.id: p for p in rows}


def has_stock(product: Optional[Product], quantity: int) -> bool:
    return bool(product and product.in_stock and product.stock_quantity >= quantity)


def decrement_stock(db: Session, product_id: int, quantity: int) -> bool:
    """
    Take `quantity` units off the product in a single conditional UPDATE.

    Returns False (and changes nothing) when the product is out of stock or
    has fewer units left, so two checkouts racing for the last unit cannot
    both succeed. Runs inside the caller's transaction.
    """
    result = db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.in_stock == True,  # noqa: E712
            Product.stock_quantity >= quantity,
        )
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
