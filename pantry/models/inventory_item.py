from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.db import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonneg"),
        CheckConstraint("count IS NULL OR count >= 0", name="ck_inventory_items_count_nonneg"),
        CheckConstraint("usage_mode IN ('count', 'quantity')", name="ck_inventory_items_usage_mode"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    sheet_id: Mapped[int] = mapped_column(ForeignKey("inventory_sheets.id", ondelete="CASCADE"), index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # NULL store means "any store" (generic item)
    store: Mapped[str | None] = mapped_column(String(255), nullable=True)
    store_code: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    item_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    count: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    count_unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    quantity_per_count: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    usage_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="count")
    unit_of_measure: Mapped[str | None] = mapped_column(String(50), nullable=True)

    min_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    is_necessity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    price_per_count: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    price_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    purchase_id: Mapped[int | None] = mapped_column(ForeignKey("purchases.id", ondelete="SET NULL"), nullable=True)
    stop_id: Mapped[int | None] = mapped_column(ForeignKey("stops.id", ondelete="SET NULL"), nullable=True)
    trip_id: Mapped[int | None] = mapped_column(ForeignKey("trips.id", ondelete="SET NULL"), nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    sheet = relationship("InventorySheet", back_populates="items")
