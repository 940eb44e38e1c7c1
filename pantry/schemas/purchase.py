from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

UsageMode = Literal["count", "quantity"]


class PurchaseBase(BaseModel):
    brand: str = Field(min_length=1)
    item: str = Field(min_length=1)
    receipt_item: Optional[str] = Field(default=None, description="Raw receipt line text.")
    unit: Optional[str] = None

    count: Optional[Decimal] = Field(default=None, ge=0)
    count_unit: Optional[str] = None
    price_per_count: Optional[Decimal] = Field(default=None, ge=0)
    units: Optional[Decimal] = Field(default=None, ge=0, description="Quantity per purchase (e.g. 16 for 16oz).")
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0)

    taxable: bool = False
    tax_amount: Optional[Decimal] = Field(default=None, ge=0)
    total_price: Decimal = Field(ge=0)

    store_code: Optional[str] = None
    usage_mode: UsageMode = "count"

    @field_validator("brand", "item", mode="before")
    @classmethod
    def _strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("receipt_item", "unit", "count_unit", "store_code", mode="before")
    @classmethod
    def _strip_optional(cls, v):
        if v is None:
            return None
        s = str(v).strip()
        return s or None


class PurchaseCreate(PurchaseBase):
    stop_id: Optional[int] = None
    purchase_date: Optional[date] = None

