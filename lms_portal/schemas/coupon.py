from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from lms_portal.services.coupons import normalize_code


class CouponCreate(BaseModel):
    code: str = Field(min_length=3, max_length=50)
    type: Literal["percentage", "fixed"]
    value: float = Field(gt=0)
    usage_limit: int | None = Field(default=None, ge=1)
    expires_at: datetime | None = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return normalize_code(v)

    @model_validator(mode="after")
    def percentage_at_most_100(self):
        if self.type == "percentage" and self.value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class CouponStatusUpdate(BaseModel):
    is_active: bool


class CouponRead(BaseModel):
    id: int
    code: str
    type: str
    value: float
    usage_limit: int | None = None
    usage_count: int
    is_active: bool
    expires_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class CouponValidate(BaseModel):
    coupon_code: str = Field(min_length=1, max_length=50)


class Discount(BaseModel):
    type: str
    value: float


class CouponValidation(BaseModel):
    success: bool = True
    discount: Discount
