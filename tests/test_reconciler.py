"""Tests for merging purchases into inventory."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from functools import partial

import pytest
from sqlalchemy.orm import sessionmaker

from pantry.core.config import settings
from pantry.core.db import Base, build_engine, run_in_transaction
from pantry.models import Household, InventoryItem, InventorySheet, Purchase
from pantry.services.reconciler import ReconcileError, quantity_to_add, reconcile_purchase

from conftest import USER_ID


class TestQuantityToAdd:
    @pytest.mark.parametrize(
        "units,expected",
        [(None, 1), (Decimal("0"), 1), (Decimal("0.5"), 1), (Decimal("2.9"), 2), (Decimal("3"), 3)],
    )
    def test_truncates_units(self, make_purchase, units, expected):
        assert quantity_to_add(make_purchase(units=units)) == Decimal(expected)

    def test_count_is_ignored(self, make_purchase):
        assert quantity_to_add(make_purchase(count=Decimal("6"))) == Decimal(1)


class TestMatchChain:
    def test_sku_match_wins_over_name(self, db, make_sheet, make_item, make_purchase, make_stop):
        """store_code beats brand/name/store disagreements."""
        sheet = make_sheet()
        sku_item = make_item(sheet, name="Whole Milk Gallon", brand="Great Value", store_code="X1")
        name_item = make_item(sheet, name="Milk", brand="Moo", store="A")
        purchase = make_purchase(brand="Moo", item="Milk", store_code="X1", stop=make_stop(store_name="A"))

        result = reconcile_purchase(db, purchase.id)

        assert result.action == "sku_match"
        assert result.item_id == sku_item.id
        db.refresh(sku_item)
        db.refresh(name_item)
        assert sku_item.quantity == Decimal("2")
        assert name_item.quantity == Decimal("1")

    def test_ambiguous_sku_falls_through(self, db, make_sheet, make_item, make_purchase):
        sheet = make_sheet()
        make_item(sheet, name="A", store_code="DUP")
        make_item(sheet, name="B", store_code="DUP")
        generic = make_item(sheet, name="Milk", brand="Moo")

        result = reconcile_purchase(db, make_purchase(store_code="DUP").id)

        assert result.action == "generic_match"
        assert result.item_id == generic.id

    def test_specific_store_match(self, db, make_sheet, make_item, make_purchase, make_stop, make_store):
        sheet = make_sheet()
        item = make_item(sheet, name="Milk", brand="Moo", store="A")
        stop = make_stop(store=make_store("A"))

        result = reconcile_purchase(db, make_purchase(brand="MOO", item="milk", stop=stop).id)

        assert result.action == "store_match"
        db.refresh(item)
        assert item.quantity == Decimal("2")
        assert db.query(InventoryItem).count() == 1

    def test_generic_fallback(self, db, make_sheet, make_item, make_purchase, make_stop):
        sheet = make_sheet()
        item = make_item(sheet, name="Milk", brand="Moo", store=None)

        result = reconcile_purchase(db, make_purchase(stop=make_stop(store_name="A")).id)

        assert result.action == "generic_match"
        db.refresh(item)
        assert item.quantity == Decimal("2")
        assert db.query(InventoryItem).count() == 1

    def test_store_specific_item_elsewhere_is_not_generic(self, db, make_sheet, make_item, make_purchase, make_stop):
        sheet = make_sheet()
        make_item(sheet, name="Milk", brand="Moo", store="B")

        result = reconcile_purchase(db, make_purchase(stop=make_stop(store_name="A")).id)

        assert result.action == "created"
        assert db.query(InventoryItem).count() == 2

    def test_other_household_items_ignored(self, db, other_household, make_sheet, make_item, make_purchase):
        foreign = make_sheet(household_id=other_household.id)
        make_item(foreign, name="Milk", brand="Moo", store_code="X1")

        result = reconcile_purchase(db, make_purchase(store_code="X1").id)

        assert result.action == "created"


class TestStaging:
    def test_no_match_creates_item_in_purchases_sheet(self, db, household, make_purchase, make_stop):
        purchase = make_purchase(
            brand="Brand New",
            item="Thing",
            units=Decimal("2.7"),
            store_code="Z9",
            receipt_item="BRAND NEW THING",
            stop=make_stop(store_name="Corner Shop"),
        )

        result = reconcile_purchase(db, purchase.id)

        assert result.action == "created"
        sheet = db.query(InventorySheet).filter_by(name="Purchases").one()
        assert sheet.user_id == USER_ID
        item = db.get(InventoryItem, result.item_id)
        assert item.sheet_id == sheet.id
        assert item.quantity == Decimal("2")
        assert (item.brand, item.name, item.store, item.store_code) == ("Brand New", "Thing", "Corner Shop", "Z9")
        assert item.purchase_id == purchase.id
        assert item.item_name == "BRAND NEW THING"

    def test_existing_purchases_sheet_is_reused(self, db, make_sheet, make_purchase):
        sheet = make_sheet("Purchases")
        result = reconcile_purchase(db, make_purchase(brand="X", item="Y").id)
        assert db.get(InventoryItem, result.item_id).sheet_id == sheet.id
        assert db.query(InventorySheet).count() == 1

    def test_stage_only_policy_skips_matching(self, db, make_sheet, make_item, make_purchase, monkeypatch):
        monkeypatch.setattr(settings, "INVENTORY_MERGE_POLICY", "stage_only")
        sheet = make_sheet()
        existing = make_item(sheet, name="Milk", brand="Moo")

        result = reconcile_purchase(db, make_purchase().id)

        assert result.action == "created"
        assert result.item_id != existing.id
        db.refresh(existing)
        assert existing.quantity == Decimal("1")


class TestIdempotency:
    def test_second_call_is_noop(self, db, make_sheet, make_item, make_purchase):
        item = make_item(make_sheet(), name="Milk", brand="Moo")
        purchase = make_purchase()

        first = reconcile_purchase(db, purchase.id)
        second = reconcile_purchase(db, purchase.id)

        assert first.action == "generic_match"
        assert second.action == "already_reconciled"
        assert second.item_id == item.id
        assert second.quantity_added == 0
        db.refresh(item)
        assert item.quantity == Decimal("2")

    def test_bookkeeping_recorded(self, db, make_purchase):
        purchase = make_purchase(brand="X", item="Y")
        result = reconcile_purchase(db, purchase.id)

        db.refresh(purchase)
        assert purchase.inventory_item_id == result.item_id
        assert purchase.reconcile_action == "created"
        assert purchase.reconciled_at is not None


def test_unknown_purchase(db, household):
    with pytest.raises(ReconcileError):
        reconcile_purchase(db, 999)


class TestConcurrency:
    WORKERS = 20

    @pytest.fixture
    def file_engine(self, tmp_path):
        eng = build_engine(f"sqlite:///{tmp_path / 'pantry.db'}")
        Base.metadata.create_all(eng)
        yield eng
        eng.dispose()

    def test_parallel_purchases_of_one_sku_all_land(self, file_engine):
        Session = sessionmaker(bind=file_engine, autocommit=False, autoflush=False)

        with Session() as setup:
            household = Household(name="Busy")
            setup.add(household)
            setup.flush()
            sheet = InventorySheet(household_id=household.id, user_id=USER_ID, name="Pantry")
            setup.add(sheet)
            setup.flush()
            item = InventoryItem(sheet_id=sheet.id, name="Milk", brand="Moo", store_code="X1", quantity=Decimal("5"))
            purchases = [
                Purchase(
                    household_id=household.id, user_id=USER_ID, brand="Moo", item="Milk",
                    store_code="X1", total_price=Decimal("3.49"),
                )
                for _ in range(self.WORKERS)
            ]
            setup.add_all([item, *purchases])
            setup.commit()
            item_id = item.id
            purchase_ids = [p.id for p in purchases]

        def reconcile(purchase_id):
            with Session() as session:
                return run_in_transaction(session, partial(reconcile_purchase, purchase_id=purchase_id), attempts=10)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(reconcile, purchase_ids))

        assert {r.action for r in results} == {"sku_match"}
        assert {r.item_id for r in results} == {item_id}
        with Session() as check:
            assert check.get(InventoryItem, item_id).quantity == Decimal("5") + self.WORKERS
            assert check.query(Purchase).filter(Purchase.reconciled_at.is_(None)).count() == 0
