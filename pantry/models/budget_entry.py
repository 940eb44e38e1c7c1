from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.db import Base


class BudgetEntry(Base):
    __tablename__ = "budget_entries"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_budget_entries_amount_nonneg"),
        CheckConstraint("type IN ('expense', 'income')", name="ck_budget_entries_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    source_id: Mapped[int | None] = mapped_column(
        ForeignKey("budget_sources.id", ondelete="SET NULL"), index=True, nullable=True
    )
    # the purchase <-> entry link lives here only, so the FK graph stays acyclic
    purchase_id: Mapped[int | None] = mapped_column(
        ForeignKey("purchases.id", ondelete="CASCADE"), unique=True, nullable=True
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="expense")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    source = relationship("BudgetSource", lazy="selectin")
    purchase = relationship("Purchase", back_populates="budget_entry")
