from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from pantry.core.db import Base


class Store(Base):
    __tablename__ = "stores"
    __table_args__ = (
        # store_number wins when present; name+address is the fallback identity
        UniqueConstraint("household_id", "store_number", name="uq_stores_household_store_number"),
        UniqueConstraint("household_id", "name", "address", name="uq_stores_household_name_address"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    state: Mapped[str | None] = mapped_column(String(32), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # "ST# 02010" / "Store #1234" as printed on the receipt header
    store_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tax_rate: Mapped[Decimal | None] = mapped_column(Numeric(6, 4), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
