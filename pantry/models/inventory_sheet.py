from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.db import Base


class InventorySheet(Base):
    __tablename__ = "inventory_sheets"
    __table_args__ = (UniqueConstraint("household_id", "name", name="uq_inventory_sheets_household_name"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)
    # owner
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    items = relationship(
        "InventoryItem",
        back_populates="sheet",
        cascade="all, delete-orphan",
        order_by="InventoryItem.id",
    )
