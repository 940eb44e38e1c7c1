from typing import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from pantry.core.db import SessionLocal
from pantry.services.households import get_household


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_household_id(
    x_household_id: int = Header(...),
    db: Session = Depends(get_db),
) -> int:
    # membership is resolved upstream; we only check the tenant exists
    if get_household(db, x_household_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Household not found")
    return x_household_id


def get_user_id(x_user_id: int = Header(...)) -> int:
    return x_user_id
