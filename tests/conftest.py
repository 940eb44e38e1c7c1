from decimal import Decimal
from datetime import date

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pantry.core.db import Base, build_engine
from pantry.models import (
    Household,
    InventoryItem,
    InventorySheet,
    Purchase,
    Stop,
    Store,
    Trip,
)

USER_ID = 7


@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def household(db):
    h = Household(name="Test Household")
    db.add(h)
    db.commit()
    return h


@pytest.fixture
def other_household(db):
    h = Household(name="Neighbours")
    db.add(h)
    db.commit()
    return h


@pytest.fixture
def make_sheet(db, household):
    def _make(name="Pantry", household_id=None, user_id=USER_ID):
        sheet = InventorySheet(household_id=household_id or household.id, user_id=user_id, name=name)
        db.add(sheet)
        db.commit()
        return sheet

    return _make


@pytest.fixture
def make_item(db):
    def _make(sheet, name="Milk", **kw):
        kw.setdefault("quantity", Decimal("1"))
        item = InventoryItem(sheet_id=sheet.id, name=name, **kw)
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def make_store(db, household):
    def _make(name="Walmart", household_id=None, **kw):
        store = Store(household_id=household_id or household.id, name=name, **kw)
        db.add(store)
        db.commit()
        return store

    return _make


@pytest.fixture
def make_stop(db, household):
    def _make(store=None, store_name=None, household_id=None, trip_date=date(2024, 3, 1)):
        hid = household_id or household.id
        trip = db.query(Trip).filter_by(household_id=hid, trip_date=trip_date).first()
        if trip is None:
            trip = Trip(household_id=hid, user_id=USER_ID, trip_date=trip_date)
            db.add(trip)
            db.flush()
        stop = Stop(
            trip_id=trip.id,
            store_id=store.id if store is not None else None,
            store_name=store_name or (store.name if store is not None else None),
            position=len(trip.stops) + 1,
        )
        db.add(stop)
        db.commit()
        return stop

    return _make


@pytest.fixture
def make_purchase(db, household):
    def _make(brand="Moo", item="Milk", stop=None, **kw):
        kw.setdefault("total_price", Decimal("3.49"))
        kw.setdefault("user_id", USER_ID)
        purchase = Purchase(
            household_id=kw.pop("household_id", household.id),
            stop_id=stop.id if stop is not None else None,
            brand=brand,
            item=item,
            **kw,
        )
        db.add(purchase)
        db.commit()
        return purchase

    return _make
