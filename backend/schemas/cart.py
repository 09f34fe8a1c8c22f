from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1, le=100)

# Request schema for updating cart item quantity (0 removes the line)
class CartUpdateItem(BaseModel):
    quantity: int = Field(le=100)

# One entry of a client-side (localStorage) cart, used by sync
class CartLineIn(BaseModel):
    product_id: Optional[int] = None
    quantity: Optional[int] = None

class CartSyncPayload(BaseModel):
    items: List[CartLineIn]

# Guest cart sent at login, merged into the stored one
class CartMergePayload(BaseModel):
    items: List[CartLineIn]

# Request schema for applying a coupon to the cart
class CouponApply(BaseModel):
    code: str = Field(min_length=1, max_length=20)

# Response schema for a single cart line item
class CartItemOut(BaseModel):
    id: int
    product_id: int
    title: str
    image_url: Optional[str] = None
    in_stock: bool
    stock_quantity: int
    quantity: int
    unit_price: float
    total_price: float
    added_at: Optional[datetime] = None

# Price summary, recomputed on every read
class SummaryOut(BaseModel):
    item_count: int
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float
    currency: str
    free_shipping_eligible: bool
    free_shipping_threshold: float

class AppliedCouponOut(BaseModel):
    code: str
    discount: float
    description: Optional[str] = None

# Response schema for the entire cart
class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]
    summary: SummaryOut
    applied_coupon: Optional[AppliedCouponOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
