"""Tests for engine setup and transaction retries."""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from pantry.core.db import run_in_transaction
from pantry.models import Household, InventoryItem


def _locked():
    return OperationalError("UPDATE", {}, Exception("database is locked"))


def test_sqlite_pragmas(db):
    assert db.execute(text("PRAGMA foreign_keys")).scalar() == 1


def test_retries_lock_conflicts(db, monkeypatch):
    monkeypatch.setattr("pantry.core.db.time.sleep", lambda _: None)
    calls = []

    def flaky(session):
        calls.append(1)
        if len(calls) < 3:
            raise _locked()
        return "ok"

    assert run_in_transaction(db, flaky, attempts=3) == "ok"
    assert len(calls) == 3


def test_gives_up_after_max_attempts(db, monkeypatch):
    monkeypatch.setattr("pantry.core.db.time.sleep", lambda _: None)

    def always_locked(session):
        raise _locked()

    with pytest.raises(OperationalError):
        run_in_transaction(db, always_locked, attempts=2)


def test_other_errors_roll_back_without_retry(db):
    calls = []

    def boom(session):
        calls.append(1)
        session.add(Household(name="never"))
        session.flush()
        raise ValueError("nope")

    with pytest.raises(ValueError):
        run_in_transaction(db, boom)

    assert len(calls) == 1
    assert db.query(Household).count() == 0


def test_check_constraints_enforced(db, make_sheet):
    sheet = make_sheet()
    db.add(InventoryItem(sheet_id=sheet.id, name="Bad", quantity=-1))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
