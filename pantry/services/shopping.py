from datetime import datetime, timezone

from sqlalchemy.orm import Session

from pantry.core.config import settings
from pantry.core.logging import get_logger
from pantry.models.inventory_item import InventoryItem
from pantry.models.inventory_sheet import InventorySheet
from pantry.models.shopping_list import ShoppingList
from pantry.models.shopping_list_item import ShoppingListItem
from pantry.services.households import lock_household

logger = get_logger(__name__)


class ShoppingError(ValueError):
    pass


def get_or_create_auto_list(db: Session, household_id: int, user_id: int) -> ShoppingList:
    auto_list = (
        db.query(ShoppingList)
        .filter(ShoppingList.household_id == household_id, ShoppingList.is_auto_generated.is_(True))
        .order_by(ShoppingList.id)
        .first()
    )
    if auto_list is None:
        auto_list = ShoppingList(
            household_id=household_id,
            user_id=user_id,
            name=settings.AUTO_SHOPPING_LIST_NAME,
            is_auto_generated=True,
        )
        db.add(auto_list)
        db.flush()
    return auto_list


def generate_shopping_list(db: Session, household_id: int, user_id: int) -> ShoppingList:
    """Top up the auto-generated list with every necessity below its minimum."""
    lock_household(db, household_id)
    auto_list = get_or_create_auto_list(db, household_id, user_id)

    low = (
        db.query(InventoryItem)
        .join(InventorySheet, InventorySheet.id == InventoryItem.sheet_id)
        .filter(
            InventorySheet.household_id == household_id,
            InventoryItem.is_necessity.is_(True),
            InventoryItem.quantity < InventoryItem.min_quantity,
        )
        .order_by(InventoryItem.id)
        .all()
    )

    for item in low:
        needed = item.min_quantity - item.quantity
        existing = (
            db.query(ShoppingListItem)
            .filter(
                ShoppingListItem.shopping_list_id == auto_list.id,
                ShoppingListItem.inventory_item_id == item.id,
                ShoppingListItem.purchased.is_(False),
            )
            .first()
        )
        if existing is None:
            db.add(ShoppingListItem(
                shopping_list_id=auto_list.id,
                inventory_item_id=item.id,
                name=item.name,
                quantity_needed=needed,
            ))
        else:
            existing.quantity_needed = needed

    db.commit()
    logger.info("auto shopping list %s: %d items below minimum", auto_list.id, len(low))

    db.refresh(auto_list)
    return auto_list


def mark_purchased(db: Session, household_id: int, shopping_item_id: int) -> ShoppingListItem:
    """Restock the linked inventory item and tick the row off, together."""
    lock_household(db, household_id)

    row = (
        db.query(ShoppingListItem)
        .join(ShoppingList, ShoppingList.id == ShoppingListItem.shopping_list_id)
        .filter(ShoppingListItem.id == shopping_item_id, ShoppingList.household_id == household_id)
        .with_for_update()
        .first()
    )
    if row is None:
        db.rollback()
        raise ShoppingError(f"shopping item {shopping_item_id} not found")

    if row.purchased:
        db.commit()
        return row

    if row.inventory_item_id is not None:
        item = (
            db.query(InventoryItem)
            .filter(InventoryItem.id == row.inventory_item_id)
            .with_for_update()
            .first()
        )
        if item is not None:
            item.quantity = (item.quantity or 0) + row.quantity_needed
            logger.info("shopping item %s restocked item %s by %s", row.id, item.id, row.quantity_needed)

    row.purchased = True
    row.completed_at = datetime.now(timezone.utc)
    db.commit()

    db.refresh(row)
    return row
