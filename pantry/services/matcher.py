from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pantry.core.logging import get_logger
from pantry.models.brand import Brand
from pantry.models.store import Store
from pantry.models.unit import Unit
from pantry.schemas.receipt import ExtractedReceipt, ScannedLine, ScannedStore, ScanResult

logger = get_logger(__name__)


class EntityMatcher:
    """Read-only lookups deciding "existing" vs "new" for the scan review screen.

    Never creates rows. A failed query is logged and reported as no match so a
    flaky read cannot block a scan.
    """

    def __init__(self, db: Session, household_id: int):
        self.db = db
        self.household_id = household_id

    def _first(self, query, what: str):
        try:
            return query.first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("%s lookup failed, treating as no match: %s", what, e)
            return None

    def find_store(self, name: str | None, store_code: str | None = None) -> Store | None:
        if name:
            store = self._first(
                self.db.query(Store).filter(
                    Store.household_id == self.household_id,
                    func.lower(Store.name) == name.lower(),
                ).order_by(Store.id),
                "store",
            )
            if store is not None:
                return store

        code = (store_code or "").strip().lstrip("#").strip()
        if not code:
            return None
        return self._first(
            self.db.query(Store).filter(
                Store.household_id == self.household_id,
                Store.store_number == code,
            ),
            "store_number",
        )

    def find_brand(self, name: str | None) -> Brand | None:
        if not name:
            return None
        return self._first(
            self.db.query(Brand).filter(
                Brand.household_id == self.household_id,
                func.lower(Brand.name) == name.lower(),
            ),
            "brand",
        )

    def find_unit(self, name: str | None) -> Unit | None:
        if not name:
            return None
        return self._first(
            self.db.query(Unit).filter(
                Unit.household_id == self.household_id,
                func.lower(Unit.name) == name.lower(),
            ),
            "unit",
        )

    def annotate(self, receipt: ExtractedReceipt) -> ScanResult:
        store = self.find_store(receipt.store.name, receipt.store.store_code)
        scanned_store = ScannedStore(
            **receipt.store.model_dump(),
            is_new=store is None,
            id=store.id if store is not None else None,
        )

        lines = []
        for line in receipt.items:
            brand = self.find_brand(line.brand)
            unit = self.find_unit(line.unit)
            lines.append(
                ScannedLine(
                    **line.model_dump(),
                    brand_is_new=brand is None,
                    brand_id=brand.id if brand is not None else None,
                    unit_is_new=unit is None,
                    unit_id=unit.id if unit is not None else None,
                )
            )

        return ScanResult(store=scanned_store, transaction=receipt.transaction, items=lines)
