"""Apply a persisted purchase to the household's inventory exactly once.

The match chain runs in priority order and stops at the first hit:

    SkuMatch            same store_code, unique in the household
    SpecificStoreMatch  same brand + item + store
    GenericMatch        same brand + item, item not tied to any store

A miss stages a new item in the "Purchases" sheet for manual sorting.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from pantry.core.config import settings
from pantry.core.logging import get_logger
from pantry.models.inventory_item import InventoryItem
from pantry.models.inventory_sheet import InventorySheet
from pantry.models.purchase import Purchase
from pantry.models.stop import Stop
from pantry.services.households import lock_household

logger = get_logger(__name__)


class ReconcileError(ValueError):
    pass


@dataclass(frozen=True)
class ReconcileResult:
    action: str  # sku_match | store_match | generic_match | created | already_reconciled
    item_id: int | None
    quantity_added: Decimal


@dataclass(frozen=True)
class MatchContext:
    household_id: int
    purchase: Purchase
    store_name: str | None


def quantity_to_add(purchase: Purchase) -> Decimal:
    """Whole units bought; count and prices never matter here."""
    if purchase.units is not None:
        whole = int(purchase.units)
        if whole > 0:
            return Decimal(whole)
    return Decimal(1)


def _household_items(db: Session, household_id: int):
    return (
        db.query(InventoryItem)
        .join(InventorySheet, InventorySheet.id == InventoryItem.sheet_id)
        .filter(InventorySheet.household_id == household_id)
    )


def _same_brand_and_item(query, purchase: Purchase):
    return query.filter(
        func.lower(InventoryItem.brand) == purchase.brand.lower(),
        func.lower(InventoryItem.name) == purchase.item.lower(),
    )


class SkuMatch:
    action = "sku_match"

    def find(self, db: Session, ctx: MatchContext) -> InventoryItem | None:
        code = ctx.purchase.store_code
        if not code:
            return None

        rows = (
            _household_items(db, ctx.household_id)
            .filter(InventoryItem.store_code == code)
            .order_by(InventoryItem.id)
            .limit(2)
            .with_for_update()
            .all()
        )
        if len(rows) > 1:
            logger.warning("store_code %r is ambiguous in household %s, skipping SKU match", code, ctx.household_id)
            return None
        return rows[0] if rows else None


class SpecificStoreMatch:
    action = "store_match"

    def find(self, db: Session, ctx: MatchContext) -> InventoryItem | None:
        if not ctx.store_name:
            return None
        return (
            _same_brand_and_item(_household_items(db, ctx.household_id), ctx.purchase)
            .filter(func.lower(InventoryItem.store) == ctx.store_name.lower())
            .order_by(InventoryItem.id)
            .with_for_update()
            .first()
        )


class GenericMatch:
    action = "generic_match"

    def find(self, db: Session, ctx: MatchContext) -> InventoryItem | None:
        return (
            _same_brand_and_item(_household_items(db, ctx.household_id), ctx.purchase)
            .filter(InventoryItem.store.is_(None))
            .order_by(InventoryItem.id)
            .with_for_update()
            .first()
        )


DEFAULT_CHAIN = (SkuMatch(), SpecificStoreMatch(), GenericMatch())


def _resolve_store_name(purchase: Purchase) -> str | None:
    stop: Stop | None = purchase.stop
    if stop is None:
        return None
    if stop.store is not None:
        return stop.store.name
    return stop.store_name


def _staging_sheet(db: Session, purchase: Purchase) -> InventorySheet:
    sheet = (
        db.query(InventorySheet)
        .filter(
            InventorySheet.household_id == purchase.household_id,
            InventorySheet.name == settings.PURCHASES_SHEET_NAME,
        )
        .with_for_update()
        .first()
    )
    if sheet is not None:
        return sheet

    owner = purchase.user_id
    if owner is None and purchase.budget_entry is not None:
        owner = purchase.budget_entry.user_id
    if owner is None:
        raise ReconcileError(f"no owner for the {settings.PURCHASES_SHEET_NAME!r} sheet of purchase {purchase.id}")

    sheet = InventorySheet(household_id=purchase.household_id, user_id=owner, name=settings.PURCHASES_SHEET_NAME)
    db.add(sheet)
    db.flush()
    logger.info("created %r sheet %s for household %s", sheet.name, sheet.id, sheet.household_id)
    return sheet


def _stage(db: Session, purchase: Purchase, store_name: str | None, qty: Decimal) -> InventoryItem:
    sheet = _staging_sheet(db, purchase)
    stop = purchase.stop

    item = InventoryItem(
        sheet_id=sheet.id,
        name=purchase.item,
        brand=purchase.brand,
        store=store_name,
        store_code=purchase.store_code,
        item_name=purchase.receipt_item,
        quantity=qty,
        count=purchase.count,
        count_unit=purchase.count_unit,
        usage_mode=purchase.usage_mode or "count",
        unit_of_measure=purchase.unit,
        price_per_count=purchase.price_per_count,
        price_per_unit=purchase.price_per_unit,
        total_price=purchase.total_price,
        taxable=purchase.taxable,
        purchase_id=purchase.id,
        stop_id=purchase.stop_id,
        trip_id=stop.trip_id if stop is not None else None,
        purchase_date=purchase.budget_entry.entry_date if purchase.budget_entry is not None else None,
    )
    db.add(item)
    db.flush()
    return item


def reconcile_purchase(db: Session, purchase_id: int, chain=None) -> ReconcileResult:
    """Merge purchase ``purchase_id`` into inventory; commits once.

    Safe to call again: a purchase that already carries ``reconciled_at`` is
    reported as ``already_reconciled`` and nothing is touched.
    """
    household_id = db.query(Purchase.household_id).filter(Purchase.id == purchase_id).scalar()
    if household_id is None:
        raise ReconcileError(f"purchase {purchase_id} not found")

    lock_household(db, household_id)
    purchase = db.query(Purchase).filter(Purchase.id == purchase_id).with_for_update().first()

    if purchase.reconciled_at is not None:
        item_id = purchase.inventory_item_id
        logger.info("purchase %s already reconciled into item %s", purchase.id, item_id)
        db.commit()
        return ReconcileResult("already_reconciled", item_id, Decimal(0))

    qty = quantity_to_add(purchase)
    store_name = _resolve_store_name(purchase)
    ctx = MatchContext(household_id=household_id, purchase=purchase, store_name=store_name)

    if settings.INVENTORY_MERGE_POLICY == "stage_only":
        strategies = ()
    else:
        strategies = DEFAULT_CHAIN if chain is None else chain

    item = None
    action = "created"
    for strategy in strategies:
        item = strategy.find(db, ctx)
        if item is not None:
            action = strategy.action
            break

    if item is not None:
        before = item.quantity or Decimal(0)
        item.quantity = before + qty
        logger.info(
            "purchase %s -> item %s via %s: quantity %s -> %s",
            purchase.id, item.id, action, before, item.quantity,
        )
    else:
        item = _stage(db, purchase, store_name, qty)
        logger.info("purchase %s staged as item %s in sheet %s", purchase.id, item.id, item.sheet_id)

    item_id = item.id
    purchase.inventory_item_id = item_id
    purchase.reconcile_action = action
    purchase.reconciled_at = datetime.now(timezone.utc)
    db.commit()

    return ReconcileResult(action, item_id, qty)
