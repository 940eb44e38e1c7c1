"""initial schema

Revision ID: 5c2f9a1d7e43
Revises:
Create Date: 2026-10-19 10:12:31.402117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c2f9a1d7e43'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = False) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def _household_fk() -> sa.Column:
    return sa.Column(
        "household_id", sa.Integer(), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False
    )


def upgrade() -> None:
    op.create_table(
        "households",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(512)),
        sa.Column("city", sa.String(128)),
        sa.Column("state", sa.String(32)),
        sa.Column("phone", sa.String(64)),
        sa.Column("store_number", sa.String(64)),
        sa.Column("tax_rate", sa.Numeric(6, 4)),
        *_timestamps(),
        sa.UniqueConstraint("household_id", "store_number", name="uq_stores_household_store_number"),
        sa.UniqueConstraint("household_id", "name", "address", name="uq_stores_household_name_address"),
    )
    op.create_index("ix_stores_household_id", "stores", ["household_id"])

    op.create_table(
        "brands",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("default_item", sa.String(255)),
        *_timestamps(),
        sa.UniqueConstraint("household_id", "name", name="uq_brands_household_name"),
    )
    op.create_index("ix_brands_household_id", "brands", ["household_id"])

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("name", sa.String(50), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("household_id", "name", name="uq_units_household_name"),
    )
    op.create_index("ix_units_household_id", "units", ["household_id"])

    op.create_table(
        "format_corrections",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("raw_text", sa.Text(), nullable=False),
        sa.Column("corrected_brand", sa.String(255)),
        sa.Column("corrected_item", sa.String(255)),
        sa.Column("corrected_unit", sa.String(50)),
        sa.Column("corrected_quantity", sa.Integer()),
        *_timestamps(updated=True),
        sa.UniqueConstraint("household_id", "raw_text", name="uq_format_corrections_household_raw_text"),
    )
    op.create_index("ix_format_corrections_household_id", "format_corrections", ["household_id"])

    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("trip_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("household_id", "trip_date", name="uq_trips_household_date"),
    )
    op.create_index("ix_trips_household_id", "trips", ["household_id"])
    op.create_index("ix_trips_user_id", "trips", ["user_id"])

    op.create_table(
        "stops",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id", ondelete="SET NULL")),
        sa.Column("store_name", sa.String(255)),
        sa.Column("store_address", sa.String(512)),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2)),
        sa.Column("tax_total", sa.Numeric(12, 2)),
        sa.Column("receipt_total", sa.Numeric(12, 2)),
        *_timestamps(),
    )
    op.create_index("ix_stops_trip_id", "stops", ["trip_id"])
    op.create_index("ix_stops_store_id", "stops", ["store_id"])

    op.create_table(
        "budget_sources",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("household_id", "name", "type", name="uq_budget_sources_household_name_type"),
        sa.CheckConstraint("type IN ('expense', 'income')", name="ck_budget_sources_type"),
    )
    op.create_index("ix_budget_sources_household_id", "budget_sources", ["household_id"])
    op.create_index("ix_budget_sources_user_id", "budget_sources", ["user_id"])

    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("stop_id", sa.Integer(), sa.ForeignKey("stops.id", ondelete="SET NULL")),
        sa.Column("brand", sa.String(255), nullable=False),
        sa.Column("item", sa.String(255), nullable=False),
        sa.Column("receipt_item", sa.Text()),
        sa.Column("unit", sa.String(50)),
        sa.Column("count", sa.Numeric(12, 3)),
        sa.Column("count_unit", sa.String(50)),
        sa.Column("price_per_count", sa.Numeric(12, 2)),
        sa.Column("units", sa.Numeric(12, 3)),
        sa.Column("price_per_unit", sa.Numeric(12, 2)),
        sa.Column("taxable", sa.Boolean(), nullable=False),
        sa.Column("tax_amount", sa.Numeric(12, 2)),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("store_code", sa.String(64)),
        sa.Column("usage_mode", sa.String(16), nullable=False),
        sa.Column("inventory_item_id", sa.Integer()),
        sa.Column("reconcile_action", sa.String(32)),
        sa.Column("reconciled_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint("total_price >= 0", name="ck_purchases_total_price_nonneg"),
        sa.CheckConstraint("count IS NULL OR count >= 0", name="ck_purchases_count_nonneg"),
        sa.CheckConstraint("units IS NULL OR units >= 0", name="ck_purchases_units_nonneg"),
        sa.CheckConstraint("usage_mode IN ('count', 'quantity')", name="ck_purchases_usage_mode"),
    )
    op.create_index("ix_purchases_household_id", "purchases", ["household_id"])
    op.create_index("ix_purchases_user_id", "purchases", ["user_id"])
    op.create_index("ix_purchases_stop_id", "purchases", ["stop_id"])
    op.create_index("ix_purchases_store_code", "purchases", ["store_code"])

    op.create_table(
        "budget_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("source_id", sa.Integer(), sa.ForeignKey("budget_sources.id", ondelete="SET NULL")),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id", ondelete="CASCADE"), unique=True),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="ck_budget_entries_amount_nonneg"),
        sa.CheckConstraint("type IN ('expense', 'income')", name="ck_budget_entries_type"),
    )
    op.create_index("ix_budget_entries_household_id", "budget_entries", ["household_id"])
    op.create_index("ix_budget_entries_user_id", "budget_entries", ["user_id"])
    op.create_index("ix_budget_entries_source_id", "budget_entries", ["source_id"])

    op.create_table(
        "inventory_sheets",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("household_id", "name", name="uq_inventory_sheets_household_name"),
    )
    op.create_index("ix_inventory_sheets_household_id", "inventory_sheets", ["household_id"])
    op.create_index("ix_inventory_sheets_user_id", "inventory_sheets", ["user_id"])

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "sheet_id", sa.Integer(), sa.ForeignKey("inventory_sheets.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("brand", sa.String(255)),
        sa.Column("store", sa.String(255)),
        sa.Column("store_code", sa.String(64)),
        sa.Column("item_name", sa.String(255)),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("count", sa.Numeric(12, 3)),
        sa.Column("count_unit", sa.String(50)),
        sa.Column("quantity_per_count", sa.Numeric(12, 3)),
        sa.Column("usage_mode", sa.String(16), nullable=False),
        sa.Column("unit_of_measure", sa.String(50)),
        sa.Column("min_quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("is_necessity", sa.Boolean(), nullable=False),
        sa.Column("price_per_count", sa.Numeric(12, 2)),
        sa.Column("price_per_unit", sa.Numeric(12, 2)),
        sa.Column("total_price", sa.Numeric(12, 2)),
        sa.Column("taxable", sa.Boolean(), nullable=False),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id", ondelete="SET NULL")),
        sa.Column("stop_id", sa.Integer(), sa.ForeignKey("stops.id", ondelete="SET NULL")),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="SET NULL")),
        sa.Column("purchase_date", sa.Date()),
        *_timestamps(updated=True),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonneg"),
        sa.CheckConstraint("count IS NULL OR count >= 0", name="ck_inventory_items_count_nonneg"),
        sa.CheckConstraint("usage_mode IN ('count', 'quantity')", name="ck_inventory_items_usage_mode"),
    )
    op.create_index("ix_inventory_items_sheet_id", "inventory_items", ["sheet_id"])
    op.create_index("ix_inventory_items_store_code", "inventory_items", ["store_code"])

    op.create_table(
        "shopping_lists",
        sa.Column("id", sa.Integer(), primary_key=True),
        _household_fk(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_auto_generated", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_shopping_lists_household_id", "shopping_lists", ["household_id"])
    op.create_index("ix_shopping_lists_user_id", "shopping_lists", ["user_id"])

    op.create_table(
        "shopping_list_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "shopping_list_id", sa.Integer(), sa.ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("inventory_item_id", sa.Integer(), sa.ForeignKey("inventory_items.id", ondelete="SET NULL")),
        sa.Column("name", sa.String(255)),
        sa.Column("quantity_needed", sa.Numeric(12, 3), nullable=False),
        sa.Column("purchased", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint("quantity_needed > 0", name="ck_shopping_list_items_quantity_needed_pos"),
    )
    op.create_index("ix_shopping_list_items_shopping_list_id", "shopping_list_items", ["shopping_list_id"])
    op.create_index("ix_shopping_list_items_inventory_item_id", "shopping_list_items", ["inventory_item_id"])


def downgrade() -> None:
    for table in (
        "shopping_list_items",
        "shopping_lists",
        "inventory_items",
        "inventory_sheets",
        "budget_entries",
        "purchases",
        "budget_sources",
        "stops",
        "trips",
        "format_corrections",
        "units",
        "brands",
        "stores",
        "households",
    ):
        op.drop_table(table)
