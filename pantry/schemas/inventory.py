from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class TransferRequest(BaseModel):
    target_sheet_id: int
    amount: Decimal
    mode: str = "count"


class TransferOut(BaseModel):
    complete: bool
    source_item_id: int
    source_deleted: bool
    target_item_id: int
    target_created: bool
    moved_count: Optional[Decimal] = None
    moved_quantity: Decimal

    model_config = {"from_attributes": True}


class ShoppingListItemOut(BaseModel):
    id: int
    inventory_item_id: Optional[int] = None
    name: Optional[str] = None
    quantity_needed: Decimal
    purchased: bool
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ShoppingListOut(BaseModel):
    id: int
    name: str
    is_auto_generated: bool
    items: list[ShoppingListItemOut] = []

    model_config = {"from_attributes": True}
