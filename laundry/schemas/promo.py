"""Promo code schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PromoValidate(BaseModel):
    """Schema for checking a promo code against a cart amount."""
    code: str = Field(..., min_length=1, max_length=20)
    order_amount: float = Field(..., ge=0)
    laundry_id: Optional[int] = None


class PromoSummary(BaseModel):
    code: str
    discount_type: str
    discount_value: float
    max_discount: Optional[float] = None
    min_order_amount: float
    valid_until: datetime

    class Config:
        from_attributes = True


class PromoValidateResponse(BaseModel):
    promo: PromoSummary
    calculated_discount: int
    final_amount: int


class ActivePromoResponse(PromoSummary):
    """Promo shown in the app's offers list."""
    title: Optional[str] = None
    subtitle: Optional[str] = None
    first_order_only: bool = False
    usage_limit: Optional[int] = None
    used_count: int = 0
