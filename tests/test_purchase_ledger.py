"""Tests for stops, purchases and their budget entries."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from pantry.models import Brand, BudgetEntry, BudgetSource, Purchase, Store, Trip
from pantry.schemas.purchase import PurchaseCreate
from pantry.schemas.receipt import ExtractedStore, ExtractedTransaction
from pantry.services.purchase_ledger import (
    LedgerError,
    calculate_tax,
    create_purchase,
    create_stop_for_receipt,
    parse_receipt_date,
)

from conftest import USER_ID


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-03-01", date(2024, 3, 1)),
        ("03/01/2024", date(2024, 3, 1)),
        ("03/01/24", date(2024, 3, 1)),
        ("yesterday", None),
        (None, None),
    ],
)
def test_parse_receipt_date(raw, expected):
    assert parse_receipt_date(raw) == expected


class TestCreateStop:
    def test_creates_trip_and_appends_positions(self, db, household, make_store):
        store = make_store("Walmart", address="1 Main St")
        txn = ExtractedTransaction(date="2024-03-01", subtotal="9.00", tax="0.50", total="9.50")

        first = create_stop_for_receipt(db, household.id, USER_ID, store.id, ExtractedStore(name="WALMART"), txn)
        second = create_stop_for_receipt(db, household.id, USER_ID, None, ExtractedStore(name="Target"), txn)

        assert first.trip_id == second.trip_id
        assert (first.position, second.position) == (1, 2)
        assert first.store_name == "Walmart"
        assert first.store_address == "1 Main St"
        assert first.receipt_total == Decimal("9.50")
        assert second.store_id is None
        assert second.store_name == "Target"
        assert db.query(Trip).count() == 1

    def test_unknown_store_rejected(self, db, household, other_household, make_store):
        foreign = make_store("Walmart", household_id=other_household.id)
        with pytest.raises(LedgerError):
            create_stop_for_receipt(
                db, household.id, USER_ID, foreign.id, ExtractedStore(), ExtractedTransaction()
            )


class TestCreatePurchase:
    def test_links_budget_entry(self, db, household, make_store, make_stop):
        stop = make_stop(store=make_store("Walmart"))
        data = PurchaseCreate(stop_id=stop.id, brand="Moo", item="Milk", total_price="3.49", units="2")

        purchase = create_purchase(db, household.id, USER_ID, data)

        entry = db.query(BudgetEntry).one()
        assert purchase.budget_entry_id == entry.id
        assert entry.purchase_id == purchase.id
        assert entry.amount == Decimal("3.49")
        assert entry.type == "expense"
        assert entry.notes == "Purchase: Moo - Milk"
        assert entry.entry_date == date(2024, 3, 1)
        assert entry.source.name == "Walmart"

    def test_budget_source_is_reused_per_store(self, db, household, make_stop):
        stop = make_stop(store_name="Corner Shop")
        for item in ("Milk", "Eggs"):
            create_purchase(db, household.id, USER_ID, PurchaseCreate(stop_id=stop.id, brand="A", item=item, total_price="1"))

        assert db.query(BudgetSource).count() == 1
        assert db.query(BudgetEntry).count() == 2

    def test_without_stop_has_no_source(self, db, household):
        purchase = create_purchase(db, household.id, USER_ID, PurchaseCreate(brand="A", item="B", total_price="0"))
        assert purchase.stop_id is None
        assert purchase.budget_entry.source_id is None

    def test_stop_from_other_household_rejected(self, db, household, other_household, make_stop):
        stop = make_stop(store_name="Elsewhere", household_id=other_household.id)
        with pytest.raises(LedgerError):
            create_purchase(db, household.id, USER_ID, PurchaseCreate(stop_id=stop.id, brand="A", item="B", total_price="1"))
        assert db.query(Purchase).count() == 0

    @pytest.mark.parametrize("field,value", [("total_price", "-1"), ("units", "-2"), ("count", "-1")])
    def test_negative_amounts_rejected(self, field, value):
        payload = {"brand": "A", "item": "B", "total_price": "1", field: value}
        with pytest.raises(ValidationError):
            PurchaseCreate(**payload)

    def test_blank_brand_rejected(self):
        with pytest.raises(ValidationError):
            PurchaseCreate(brand="  ", item="B", total_price="1")

    def test_brand_default_item_follows_latest_purchase(self, db, household):
        db.add(Brand(household_id=household.id, name="Great Value", default_item="Bread"))
        db.commit()

        create_purchase(db, household.id, USER_ID, PurchaseCreate(brand="great value", item="Eggs", total_price="2"))
        create_purchase(db, household.id, USER_ID, PurchaseCreate(brand="Moo", item="Milk", total_price="3"))

        brands = {b.name: b.default_item for b in db.query(Brand).all()}
        assert brands == {"Great Value": "Eggs", "Moo": "Milk"}

    def test_taxable_line_taxed_at_store_rate(self, db, household, make_store, make_stop):
        stop = make_stop(store=make_store("Meijer", tax_rate=Decimal("0.0825")))

        taxed = create_purchase(
            db, household.id, USER_ID, PurchaseCreate(stop_id=stop.id, brand="A", item="Soap", total_price="10.00", taxable=True)
        )
        printed = create_purchase(
            db, household.id, USER_ID,
            PurchaseCreate(stop_id=stop.id, brand="A", item="Towels", total_price="10.00", taxable=True, tax_amount="0.70"),
        )
        untaxed = create_purchase(
            db, household.id, USER_ID, PurchaseCreate(stop_id=stop.id, brand="A", item="Bread", total_price="10.00")
        )

        assert taxed.tax_amount == Decimal("0.83")
        assert printed.tax_amount == Decimal("0.70")
        assert untaxed.tax_amount is None


class TestCalculateTax:
    def test_store_rate_wins(self):
        store = Store(name="X", state="IN", tax_rate=Decimal("0.05"))
        assert calculate_tax(store, Decimal("2.00"), True) == Decimal("0.10")

    def test_falls_back_to_state_default(self):
        assert calculate_tax(Store(name="X", state="in"), Decimal("3.49"), True) == Decimal("0.24")
        assert calculate_tax(Store(name="X", state="MI"), Decimal("10"), True) == Decimal("0.60")

    @pytest.mark.parametrize("store,taxable", [(None, True), (Store(name="X", state="IN"), False), (Store(name="X", state="ZZ"), True)])
    def test_no_tax(self, store, taxable):
        assert calculate_tax(store, Decimal("10"), taxable) == 0
