# import every table so Base.metadata and relationship() strings resolve
from pantry.models.household import Household
from pantry.models.store import Store
from pantry.models.brand import Brand
from pantry.models.unit import Unit
from pantry.models.format_correction import FormatCorrection
from pantry.models.trip import Trip
from pantry.models.stop import Stop
from pantry.models.budget_source import BudgetSource
from pantry.models.budget_entry import BudgetEntry
from pantry.models.purchase import Purchase
from pantry.models.inventory_sheet import InventorySheet
from pantry.models.inventory_item import InventoryItem
from pantry.models.shopping_list import ShoppingList
from pantry.models.shopping_list_item import ShoppingListItem

__all__ = [
    "Household",
    "Store",
    "Brand",
    "Unit",
    "FormatCorrection",
    "Trip",
    "Stop",
    "BudgetSource",
    "BudgetEntry",
    "Purchase",
    "InventorySheet",
    "InventoryItem",
    "ShoppingList",
    "ShoppingListItem",
]
