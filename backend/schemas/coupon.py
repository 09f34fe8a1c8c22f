from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from models.coupon import CouponType


# Admin payload for creating a coupon
class CouponCreate(BaseModel):
    code: str = Field(min_length=3, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    type: CouponType
    value: Decimal = Field(gt=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    min_order_value: Decimal = Field(default=Decimal("0"), ge=0)
    max_order_value: Optional[Decimal] = Field(default=None, ge=0)
    usage_limit_total: Optional[int] = Field(default=None, ge=1)
    usage_limit_per_user: int = Field(default=1, ge=1)
    valid_from: datetime
    valid_until: datetime
    applicable_products: List[int] = []
    applicable_categories: List[str] = []
    excluded_products: List[int] = []
    specific_users: List[int] = []
    user_roles: List[str] = []
    new_users_only: bool = False
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v.isascii() or not v.isalnum():
            raise ValueError("Coupon code may only contain letters and digits")
        return v

    @model_validator(mode="after")
    def check_rules(self):
        if self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        if self.type == CouponType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


# Activate / deactivate switch
class CouponActivePatch(BaseModel):
    is_active: bool


# Output schema for a coupon
class CouponOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    type: CouponType
    value: float
    max_discount: Optional[float] = None
    min_order_value: float
    max_order_value: Optional[float] = None
    usage_limit_total: Optional[int] = None
    usage_limit_per_user: int
    usage_count_total: int
    valid_from: datetime
    valid_until: datetime
    applicable_products: List[int] = []
    applicable_categories: List[str] = []
    excluded_products: List[int] = []
    new_users_only: bool
    is_active: bool
    status: str
    discount_display: str

    class Config:
        from_attributes = True


# Result of GET /coupons/validate/{code}
class CouponValidationOut(BaseModel):
    valid: bool
    message: str
    error: Optional[str] = None
    coupon: CouponOut
    discount: Optional[float] = None
    final_total: Optional[float] = None
