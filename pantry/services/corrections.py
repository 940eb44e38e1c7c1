from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from pantry.core.logging import get_logger
from pantry.models.format_correction import FormatCorrection
from pantry.schemas.receipt import ExtractedLine

logger = get_logger(__name__)

_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

_TRACKED = ("brand", "item", "unit", "quantity")


class CorrectionStore:
    """Household-scoped memory of how the user rewrote a raw receipt line.

    Keyed by the exact raw text (case-insensitive), so the next receipt that
    prints the same line gets the user's brand/item/unit/quantity.
    """

    def __init__(self, db: Session, household_id: int):
        self.db = db
        self.household_id = household_id

    def find(self, raw_text: str | None) -> FormatCorrection | None:
        if not raw_text:
            return None
        return (
            self.db.query(FormatCorrection)
            .filter(
                FormatCorrection.household_id == self.household_id,
                func.lower(FormatCorrection.raw_text) == raw_text.lower(),
            )
            .first()
        )

    def apply(self, line: ExtractedLine) -> ExtractedLine:
        correction = self.find(line.raw_text)
        if correction is None:
            return line

        update = {}
        if correction.corrected_brand:
            update["brand"] = correction.corrected_brand
        if correction.corrected_item:
            update["item"] = correction.corrected_item
        if correction.corrected_unit is not None:
            update["unit"] = correction.corrected_unit
        if correction.corrected_quantity is not None:
            update["quantity"] = correction.corrected_quantity

        if update:
            logger.debug("correction %s applied to %r", correction.id, line.raw_text)
        return line.model_copy(update=update)

    def record(self, original: ExtractedLine, final: ExtractedLine) -> FormatCorrection | None:
        """Remember the user's edit of ``original``; no-op when nothing changed."""
        if not original.raw_text:
            return None

        changed = [f for f in _TRACKED if getattr(original, f) != getattr(final, f)]
        if not changed:
            return None

        existing = self.find(original.raw_text)

        values = {
            "household_id": self.household_id,
            "raw_text": original.raw_text,
            "corrected_brand": final.brand,
            "corrected_item": final.item,
            # unit and quantity are only remembered when the user touched them;
            # an untouched field keeps whatever was learned before
            "corrected_unit": final.unit if "unit" in changed else None,
            "corrected_quantity": final.quantity if "quantity" in changed else None,
        }

        if existing is not None:
            # stored spelling of raw_text wins so the unique key keeps matching
            values["raw_text"] = existing.raw_text
            if "unit" not in changed:
                values["corrected_unit"] = existing.corrected_unit
            if "quantity" not in changed:
                values["corrected_quantity"] = existing.corrected_quantity

        dialect = self.db.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is not None:
            stmt = insert(FormatCorrection).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["household_id", "raw_text"],
                set_={
                    "corrected_brand": stmt.excluded.corrected_brand,
                    "corrected_item": stmt.excluded.corrected_item,
                    "corrected_unit": stmt.excluded.corrected_unit,
                    "corrected_quantity": stmt.excluded.corrected_quantity,
                    "updated_at": func.now(),
                },
            )
            self.db.execute(stmt)
        elif existing is not None:
            for key, value in values.items():
                setattr(existing, key, value)
        else:
            self.db.add(FormatCorrection(**values))

        self.db.commit()
        logger.info("recorded correction for %r (%s)", original.raw_text, ", ".join(changed))

        return self.find(values["raw_text"])
