from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pantry.core.config import settings
from pantry.core.logging import get_logger
from pantry.models.brand import Brand
from pantry.models.budget_entry import BudgetEntry
from pantry.models.budget_source import BudgetSource
from pantry.models.purchase import Purchase
from pantry.models.stop import Stop
from pantry.models.store import Store
from pantry.models.trip import Trip
from pantry.schemas.purchase import PurchaseCreate
from pantry.schemas.receipt import ExtractedStore, ExtractedTransaction

logger = get_logger(__name__)

RECEIPT_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%Y/%m/%d")

CENT = Decimal("0.01")


class LedgerError(ValueError):
    pass


def parse_receipt_date(value: str | None) -> date | None:
    if not value:
        return None
    for fmt in RECEIPT_DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    logger.debug("unrecognized receipt date %r", value)
    return None


def _get_or_create(db: Session, model, lookup: dict, defaults: dict | None = None):
    """Fetch by ``lookup`` or insert; a concurrent insert of the same key is re-read."""
    obj = db.query(model).filter_by(**lookup).first()
    if obj is not None:
        return obj

    obj = model(**lookup, **(defaults or {}))
    try:
        with db.begin_nested():
            db.add(obj)
    except IntegrityError:
        obj = db.query(model).filter_by(**lookup).one()
    return obj


def create_stop_for_receipt(
    db: Session,
    household_id: int,
    user_id: int,
    store_id: int | None,
    store: ExtractedStore,
    transaction: ExtractedTransaction,
) -> Stop:
    """Append a stop for one scanned receipt to the household's trip for that day."""
    known = None
    if store_id is not None:
        known = db.query(Store).filter(Store.id == store_id, Store.household_id == household_id).first()
        if known is None:
            raise LedgerError(f"store {store_id} not found")

    trip_date = parse_receipt_date(transaction.date) or date.today()
    trip = _get_or_create(
        db,
        Trip,
        {"household_id": household_id, "trip_date": trip_date},
        {"user_id": user_id},
    )

    position = db.query(func.count(Stop.id)).filter(Stop.trip_id == trip.id).scalar() + 1

    stop = Stop(
        trip_id=trip.id,
        store_id=store_id,
        store_name=known.name if known is not None else store.name,
        store_address=known.address if known is not None else store.address,
        position=position,
        subtotal=transaction.subtotal,
        tax_total=transaction.tax,
        receipt_total=transaction.total,
    )
    db.add(stop)
    db.commit()
    db.refresh(stop)

    logger.info("stop %s created at position %d of trip %s (%s)", stop.id, position, trip.id, trip_date)
    return stop


def get_stop(db: Session, household_id: int, stop_id: int) -> Stop:
    stop = (
        db.query(Stop)
        .join(Trip, Trip.id == Stop.trip_id)
        .filter(Stop.id == stop_id, Trip.household_id == household_id)
        .first()
    )
    if stop is None:
        raise LedgerError(f"stop {stop_id} not found")
    return stop


def _stop_store_name(stop: Stop | None) -> str | None:
    if stop is None:
        return None
    if stop.store is not None:
        return stop.store.name
    return stop.store_name


def calculate_tax(store: Store | None, amount: Decimal, taxable: bool) -> Decimal:
    """Tax owed on ``amount`` at ``store``: its own rate, else its state's default."""
    if store is None or not taxable:
        return Decimal(0)
    rate = store.tax_rate
    if rate is None:
        rate = settings.DEFAULT_STATE_TAX_RATES.get((store.state or "").upper(), Decimal(0))
    return (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def upsert_brand_defaults(db: Session, household_id: int, brand_name: str, item: str) -> Brand:
    """Remember ``item`` as what this household usually buys under ``brand_name``."""
    brand = (
        db.query(Brand)
        .filter(Brand.household_id == household_id, func.lower(Brand.name) == brand_name.lower())
        .order_by(Brand.id)
        .first()
    )
    if brand is None:
        brand = _get_or_create(db, Brand, {"household_id": household_id, "name": brand_name})
    brand.default_item = item
    return brand


def create_purchase(db: Session, household_id: int, user_id: int, data: PurchaseCreate) -> Purchase:
    """Persist a purchase and its expense entry; both or neither.

    The brand's default item is refreshed in the same commit, and a taxable
    line without a printed tax amount is taxed at the stop's store rate.
    """
    stop = get_stop(db, household_id, data.stop_id) if data.stop_id is not None else None

    store_name = _stop_store_name(stop)
    entry_date = data.purchase_date or (stop.trip.trip_date if stop is not None else None) or date.today()

    fields = data.model_dump(exclude={"stop_id", "purchase_date"})
    if fields["tax_amount"] is None and data.taxable:
        tax = calculate_tax(stop.store if stop is not None else None, data.total_price, data.taxable)
        if tax:
            fields["tax_amount"] = tax

    try:
        source = None
        if store_name:
            source = _get_or_create(
                db,
                BudgetSource,
                {"household_id": household_id, "name": store_name, "type": "expense"},
                {"user_id": user_id},
            )

        upsert_brand_defaults(db, household_id, data.brand, data.item)

        purchase = Purchase(
            household_id=household_id,
            user_id=user_id,
            stop_id=stop.id if stop is not None else None,
            **fields,
        )
        purchase.budget_entry = BudgetEntry(
            household_id=household_id,
            user_id=user_id,
            source=source,
            entry_date=entry_date,
            amount=data.total_price,
            type="expense",
            notes=f"Purchase: {data.brand} - {data.item}",
        )
        db.add(purchase)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    logger.info(
        "purchase %s recorded: %s - %s total=%s budget_entry=%s",
        purchase.id, purchase.brand, purchase.item, purchase.total_price, purchase.budget_entry_id,
    )
    return purchase
