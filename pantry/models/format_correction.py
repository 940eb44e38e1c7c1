from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from pantry.core.db import Base


class FormatCorrection(Base):
    __tablename__ = "format_corrections"
    __table_args__ = (
        UniqueConstraint("household_id", "raw_text", name="uq_format_corrections_household_raw_text"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False)

    raw_text: Mapped[str] = mapped_column(Text, nullable=False)

    corrected_brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    corrected_item: Mapped[str | None] = mapped_column(String(255), nullable=True)
    corrected_unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    corrected_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
