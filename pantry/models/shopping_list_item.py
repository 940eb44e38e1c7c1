from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pantry.core.db import Base


class ShoppingListItem(Base):
    __tablename__ = "shopping_list_items"
    __table_args__ = (
        CheckConstraint("quantity_needed > 0", name="ck_shopping_list_items_quantity_needed_pos"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shopping_list_id: Mapped[int] = mapped_column(
        ForeignKey("shopping_lists.id", ondelete="CASCADE"), index=True, nullable=False
    )
    inventory_item_id: Mapped[int | None] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="SET NULL"), index=True, nullable=True
    )

    # free-text entries have a name and no inventory item
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity_needed: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    purchased: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    shopping_list = relationship("ShoppingList", back_populates="items")
    inventory_item = relationship("InventoryItem", lazy="selectin")
