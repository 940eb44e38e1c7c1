from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.orm import Session

from pantry.core.logging import get_logger
from pantry.models.inventory_item import InventoryItem
from pantry.models.inventory_sheet import InventorySheet
from pantry.models.purchase import Purchase
from pantry.models.shopping_list_item import ShoppingListItem
from pantry.services.households import lock_household

logger = get_logger(__name__)

MODES = ("count", "quantity")
NOT_FOUND = {"item_not_found", "sheet_not_found"}

# descriptive fields a target copy inherits from the source
_COPIED = (
    "name",
    "brand",
    "store",
    "store_code",
    "item_name",
    "count_unit",
    "quantity_per_count",
    "usage_mode",
    "unit_of_measure",
    "price_per_count",
    "price_per_unit",
    "taxable",
    "purchase_id",
    "stop_id",
    "trip_id",
    "purchase_date",
)


class TransferError(ValueError):
    def __init__(self, code: str, message: str | None = None):
        self.code = code
        super().__init__(message or code)


@dataclass(frozen=True)
class TransferResult:
    complete: bool
    source_item_id: int
    source_deleted: bool
    target_item_id: int
    target_created: bool
    moved_count: Decimal | None
    moved_quantity: Decimal


@dataclass(frozen=True)
class _Plan:
    complete: bool
    moved_count: Decimal | None
    moved_quantity: Decimal


def _plan(source: InventoryItem, amount: Decimal, mode: str) -> _Plan:
    quantity = source.quantity or Decimal(0)

    if mode == "count":
        if amount < 1:
            raise TransferError("invalid_amount", "count transfers move at least one")
        # legacy rows never got a count; their quantity is the count
        available = source.count if source.count is not None else quantity
        if amount > available:
            raise TransferError("insufficient_quantity", f"only {available} available")

        if amount == available:
            return _Plan(True, source.count, quantity)

        per = source.quantity_per_count
        moved = amount * per if per else amount
        return _Plan(False, amount if source.count is not None else None, min(moved, quantity))

    if amount <= 0:
        raise TransferError("invalid_amount", "quantity transfers move a positive amount")
    if amount > quantity:
        raise TransferError("insufficient_quantity", f"only {quantity} available")

    if amount == quantity:
        return _Plan(True, source.count, quantity)
    return _Plan(False, None, amount)


def _find_target(db: Session, sheet_id: int, source: InventoryItem) -> InventoryItem | None:
    q = db.query(InventoryItem).filter(
        InventoryItem.sheet_id == sheet_id,
        func.lower(InventoryItem.name) == source.name.lower(),
    )
    if source.brand is None:
        q = q.filter(InventoryItem.brand.is_(None))
    else:
        q = q.filter(func.lower(InventoryItem.brand) == source.brand.lower())
    return q.order_by(InventoryItem.id).with_for_update().first()


def _repoint(db: Session, source_id: int, target_id: int) -> None:
    db.query(ShoppingListItem).filter(ShoppingListItem.inventory_item_id == source_id).update(
        {ShoppingListItem.inventory_item_id: target_id}, synchronize_session=False
    )
    db.query(Purchase).filter(Purchase.inventory_item_id == source_id).update(
        {Purchase.inventory_item_id: target_id}, synchronize_session=False
    )


def transfer_item(
    db: Session,
    household_id: int,
    item_id: int,
    target_sheet_id: int,
    amount,
    mode: str = "count",
) -> TransferResult:
    """Move ``amount`` of an item to another sheet of the same household.

    ``mode="count"`` moves containers (each worth ``quantity_per_count``),
    ``mode="quantity"`` moves raw quantity and leaves counts alone. A source
    that ends up empty is deleted. Every check runs before the first write.
    Raises TransferError.
    """
    try:
        if mode not in MODES:
            raise TransferError("invalid_mode", f"mode must be one of {', '.join(MODES)}")
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise TransferError("invalid_amount", f"not a number: {amount!r}")
        if not amount.is_finite():
            raise TransferError("invalid_amount", f"not a number: {amount}")

        lock_household(db, household_id)

        source = (
            db.query(InventoryItem)
            .join(InventorySheet, InventorySheet.id == InventoryItem.sheet_id)
            .filter(InventoryItem.id == item_id, InventorySheet.household_id == household_id)
            .with_for_update()
            .first()
        )
        if source is None:
            raise TransferError("item_not_found", f"item {item_id} not found")

        target_sheet = (
            db.query(InventorySheet)
            .filter(InventorySheet.id == target_sheet_id, InventorySheet.household_id == household_id)
            .first()
        )
        if target_sheet is None:
            raise TransferError("sheet_not_found", f"sheet {target_sheet_id} not found")
        if target_sheet.id == source.sheet_id:
            raise TransferError("same_sheet", "item is already on that sheet")

        plan = _plan(source, amount, mode)
    except TransferError as e:
        db.rollback()
        logger.info("transfer of item %s rejected: %s (%s)", item_id, e.code, e)
        raise

    source_id = source.id
    target = _find_target(db, target_sheet.id, source)
    target_created = target is None

    if target is None:
        target = InventoryItem(
            sheet_id=target_sheet.id,
            quantity=plan.moved_quantity,
            count=plan.moved_count,
            **{f: getattr(source, f) for f in _COPIED},
        )
        db.add(target)
    else:
        target.quantity = (target.quantity or Decimal(0)) + plan.moved_quantity
        if plan.moved_count is not None:
            target.count = (target.count or Decimal(0)) + plan.moved_count

    if not plan.complete:
        source.quantity = max((source.quantity or Decimal(0)) - plan.moved_quantity, Decimal(0))
        if plan.moved_count is not None and source.count is not None:
            source.count = max(source.count - plan.moved_count, Decimal(0))

    drained = plan.complete or (source.quantity == 0 and not source.count)

    db.flush()
    target_id = target.id

    if drained:
        _repoint(db, source_id, target_id)
        db.delete(source)

    db.commit()

    logger.info(
        "moved item %s -> sheet %s (item %s%s): count=%s quantity=%s%s",
        source_id, target_sheet_id, target_id, ", new" if target_created else "",
        plan.moved_count, plan.moved_quantity, ", source deleted" if drained else "",
    )
    return TransferResult(
        complete=plan.complete,
        source_item_id=source_id,
        source_deleted=drained,
        target_item_id=target_id,
        target_created=target_created,
        moved_count=plan.moved_count,
        moved_quantity=plan.moved_quantity,
    )
