from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.db import Base


class Purchase(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_purchases_total_price_nonneg"),
        CheckConstraint("count IS NULL OR count >= 0", name="ck_purchases_count_nonneg"),
        CheckConstraint("units IS NULL OR units >= 0", name="ck_purchases_units_nonneg"),
        CheckConstraint("usage_mode IN ('count', 'quantity')", name="ck_purchases_usage_mode"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    stop_id: Mapped[int | None] = mapped_column(ForeignKey("stops.id", ondelete="SET NULL"), index=True, nullable=True)

    brand: Mapped[str] = mapped_column(String(255), nullable=False)
    item: Mapped[str] = mapped_column(String(255), nullable=False)
    receipt_item: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)

    count: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    count_unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    price_per_count: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    units: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    price_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    store_code: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    usage_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="count")

    # set once, by the reconciler; a second reconcile is a no-op.
    # not a FK: transfers may delete the item this purchase was merged into
    inventory_item_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reconcile_action: Mapped[str | None] = mapped_column(String(32), nullable=True)
    reconciled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    stop = relationship("Stop", lazy="selectin")
    budget_entry = relationship("BudgetEntry", back_populates="purchase", uselist=False, lazy="selectin")

    @property
    def budget_entry_id(self) -> int | None:
        return self.budget_entry.id if self.budget_entry is not None else None
