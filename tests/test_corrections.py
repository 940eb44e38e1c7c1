"""Tests for the household format-correction store."""

from pantry.models import FormatCorrection
from pantry.schemas.receipt import ExtractedLine
from pantry.services.corrections import CorrectionStore


def _line(**kw):
    kw.setdefault("raw_text", "GV WHT BRD 2PK")
    kw.setdefault("brand", "Gv")
    kw.setdefault("item", "Wht Brd 2pk")
    return ExtractedLine(**kw)


class TestApply:
    def test_no_correction_is_noop(self, db, household):
        line = _line()
        assert CorrectionStore(db, household.id).apply(line) == line

    def test_empty_raw_text_is_noop(self, db, household):
        db.add(FormatCorrection(household_id=household.id, raw_text="", corrected_brand="X"))
        db.commit()
        line = _line(raw_text="")
        assert CorrectionStore(db, household.id).apply(line) == line

    def test_overwrites_brand_and_item_case_insensitively(self, db, household):
        db.add(FormatCorrection(
            household_id=household.id,
            raw_text="gv wht brd 2pk",
            corrected_brand="Great Value",
            corrected_item="White Bread",
        ))
        db.commit()

        out = CorrectionStore(db, household.id).apply(_line(unit="ea", quantity=2))

        assert out.brand == "Great Value"
        assert out.item == "White Bread"
        # not supplied by the correction
        assert out.unit == "ea"
        assert out.quantity == 2

    def test_unit_and_quantity_only_when_supplied(self, db, household):
        db.add(FormatCorrection(
            household_id=household.id,
            raw_text="GV WHT BRD 2PK",
            corrected_item="White Bread",
            corrected_unit="loaf",
            corrected_quantity=2,
        ))
        db.commit()

        out = CorrectionStore(db, household.id).apply(_line())

        assert out.brand == "Gv"
        assert out.unit == "loaf"
        assert out.quantity == 2

    def test_apply_is_idempotent(self, db, household):
        db.add(FormatCorrection(household_id=household.id, raw_text="GV WHT BRD 2PK", corrected_brand="Great Value"))
        db.commit()
        store = CorrectionStore(db, household.id)

        once = store.apply(_line())
        twice = store.apply(once)
        assert once == twice
        assert store.apply(_line()) == once

    def test_scoped_to_household(self, db, household, other_household):
        db.add(FormatCorrection(household_id=other_household.id, raw_text="GV WHT BRD 2PK", corrected_brand="Nope"))
        db.commit()
        assert CorrectionStore(db, household.id).apply(_line()).brand == "Gv"


class TestRecord:
    def test_unchanged_line_records_nothing(self, db, household):
        store = CorrectionStore(db, household.id)
        assert store.record(_line(), _line()) is None
        assert db.query(FormatCorrection).count() == 0

    def test_records_edit_and_upserts(self, db, household):
        store = CorrectionStore(db, household.id)

        first = store.record(_line(), _line(brand="Great Value", item="White Bread"))
        assert first.corrected_brand == "Great Value"

        second = store.record(_line(), _line(brand="Great Value", item="Wheat Bread", quantity=2))
        assert second.id == first.id
        assert second.corrected_item == "Wheat Bread"
        assert second.corrected_quantity == 2
        assert db.query(FormatCorrection).count() == 1

    def test_recorded_correction_is_applied_next_time(self, db, household):
        store = CorrectionStore(db, household.id)
        store.record(_line(), _line(brand="Great Value", item="White Bread"))

        out = store.apply(_line(raw_text="gv wht brd 2pk"))
        assert (out.brand, out.item) == ("Great Value", "White Bread")

    def test_later_edit_keeps_learned_unit_and_quantity(self, db, household):
        store = CorrectionStore(db, household.id)
        raw = _line(raw_text="GV WHL MLK", brand="Gv", item="Whl Mlk", unit="lb")

        store.record(raw, raw.model_copy(update={"unit": "gal", "quantity": 2}))
        rescanned = store.apply(raw)
        assert (rescanned.unit, rescanned.quantity) == ("gal", 2)

        # the user only fixes the item name on the next receipt
        store.record(rescanned, rescanned.model_copy(update={"item": "Whole Milk"}))

        third = store.apply(raw)
        assert third.item == "Whole Milk"
        assert third.unit == "gal"
        assert third.quantity == 2
        correction = db.query(FormatCorrection).one()
        assert correction.corrected_unit == "gal"
