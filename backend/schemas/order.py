from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from models.order import OrderStatus, PaymentMethod, PaymentStatus


# Postal address snapshotted on the order
class AddressIn(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address_line1: str = Field(min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = "India"


# A requested order line; price is what the client saw in the cart
class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(ge=1, le=100)
    price: Optional[Decimal] = Field(default=None, ge=0)


# Input schema for placing a new order
class OrderCreatePayload(BaseModel):
    # Emptiness is checked by the order service
    items: List[OrderItemIn]
    shipping_address: AddressIn
    billing_address: Optional[AddressIn] = None
    payment_method: PaymentMethod
    coupon_code: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    product_id: int
    title: str
    quantity: int
    unit_price: float
    total_price: float

    class Config:
        from_attributes = True


class TimelineOut(BaseModel):
    status: OrderStatus
    timestamp: datetime
    description: Optional[str] = None

    class Config:
        from_attributes = True


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: OrderStatus
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float
    currency: str
    coupon_code: Optional[str] = None
    shipping_address: dict
    billing_address: dict
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]
    timeline: List[TimelineOut]

    class Config:
        from_attributes = True


class PaginationOut(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderResponse]
    pagination: PaginationOut


# Response of POST /orders
class PlaceOrderResponse(BaseModel):
    order: OrderResponse
    payment_details: dict
    created: bool


# Schema for updating order status (admin)
class OrderStatusPatch(BaseModel):
    status: OrderStatus
    description: Optional[str] = None
    tracking_number: Optional[str] = Field(default=None, min_length=1)
    carrier: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
