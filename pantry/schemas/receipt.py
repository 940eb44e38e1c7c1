from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from pantry.schemas.purchase import PurchaseBase

_TRUTHY = {"1", "true", "t", "yes", "y", "x"}


def to_decimal(value) -> Optional[Decimal]:
    """Lenient numeric parse for OCR output: "$1,234.50" -> Decimal("1234.50").

    Anything that does not parse (or is NaN/Infinity) becomes None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None

    s = value.strip().replace("$", "").replace(",", "").replace(" ", "")
    if not s:
        return None
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def to_quantity(value) -> int:
    if isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return value
    d = to_decimal(value)
    if d is None:
        return 1
    return int(d)


def to_optional_str(value) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class ExtractedStore(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    store_code: Optional[str] = Field(default=None, description="Store number printed on the receipt header.")
    phone: Optional[str] = None

    @field_validator("name", "address", "city", "state", "store_code", "phone", mode="before")
    @classmethod
    def _strip(cls, v):
        return to_optional_str(v)


class ExtractedTransaction(BaseModel):
    # kept as text: receipts print dates in whatever format the store likes
    date: Optional[str] = None
    time: Optional[str] = None
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Optional[Decimal] = None
    payment_method: Optional[str] = None

    @field_validator("date", "time", "payment_method", mode="before")
    @classmethod
    def _strip(cls, v):
        return to_optional_str(v)

    @field_validator("subtotal", "tax", "total", mode="before")
    @classmethod
    def _money(cls, v):
        return to_decimal(v)


class ExtractedLine(BaseModel):
    raw_text: str = Field(default="", description="Line text exactly as printed; key for format corrections.")
    brand: Optional[str] = None
    item: Optional[str] = None
    quantity: int = 1
    unit: Optional[str] = None
    unit_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    taxable: bool = False
    tax_amount: Optional[Decimal] = None
    store_code: Optional[str] = Field(default=None, description="SKU / item code printed next to the line.")

    @field_validator("raw_text", mode="before")
    @classmethod
    def _raw_text(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("brand", "item", "unit", "store_code", mode="before")
    @classmethod
    def _strip(cls, v):
        return to_optional_str(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        return to_quantity(v)

    @field_validator("unit_price", "total_price", "tax_amount", mode="before")
    @classmethod
    def _money(cls, v):
        return to_decimal(v)

    @field_validator("taxable", mode="before")
    @classmethod
    def _taxable(cls, v):
        if isinstance(v, bool):
            return v
        if v is None:
            return False
        if isinstance(v, (int, float)):
            return v != 0
        return str(v).strip().lower() in _TRUTHY


class ExtractedReceipt(BaseModel):
    store: ExtractedStore = Field(default_factory=ExtractedStore)
    transaction: ExtractedTransaction = Field(default_factory=ExtractedTransaction)
    items: list[ExtractedLine] = Field(default_factory=list)

    @field_validator("store", "transaction", "items", mode="before")
    @classmethod
    def _none_to_default(cls, v, info):
        if v is None:
            return [] if info.field_name == "items" else {}
        return v


class ScannedStore(ExtractedStore):
    is_new: bool = True
    id: Optional[int] = None


class ScannedLine(ExtractedLine):
    brand_is_new: bool = True
    brand_id: Optional[int] = None
    unit_is_new: bool = True
    unit_id: Optional[int] = None


class ScanResult(BaseModel):
    store: ScannedStore
    transaction: ExtractedTransaction
    items: list[ScannedLine] = []


class ConfirmLine(PurchaseBase):
    """One line the user accepted, possibly after editing brand/item/unit."""

    original: Optional[ExtractedLine] = Field(
        default=None,
        description="The line as returned by /receipts/scan; used to learn format corrections.",
    )
    quantity: int = Field(default=1, ge=1, description="Line quantity as confirmed.")

    def as_extracted(self) -> ExtractedLine:
        raw_text = self.original.raw_text if self.original is not None else (self.receipt_item or "")
        return ExtractedLine(
            raw_text=raw_text,
            brand=self.brand,
            item=self.item,
            quantity=self.quantity,
            unit=self.unit,
            total_price=self.total_price,
            taxable=self.taxable,
            tax_amount=self.tax_amount,
            store_code=self.store_code,
        )


class ConfirmRequest(BaseModel):
    store: ScannedStore = Field(default_factory=ScannedStore)
    transaction: ExtractedTransaction = Field(default_factory=ExtractedTransaction)
    # reuse an existing stop instead of creating one for this receipt
    stop_id: Optional[int] = None
    lines: list[ConfirmLine] = Field(default_factory=list)


class ReconcileOut(BaseModel):
    action: str
    item_id: Optional[int] = None
    quantity_added: Decimal = Decimal("0")

    model_config = {"from_attributes": True}


class ConfirmLineResult(BaseModel):
    purchase_id: int
    budget_entry_id: Optional[int] = None
    reconcile: Optional[ReconcileOut] = None
    error: Optional[str] = None


class ConfirmResult(BaseModel):
    stop_id: Optional[int] = None
    lines: list[ConfirmLineResult] = []
