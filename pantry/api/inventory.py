from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pantry.api.deps import get_db, get_household_id, get_user_id
from pantry.core.db import run_in_transaction
from pantry.schemas.inventory import ShoppingListItemOut, ShoppingListOut, TransferOut, TransferRequest
from pantry.services.shopping import ShoppingError, generate_shopping_list, mark_purchased
from pantry.services.transfer import NOT_FOUND, TransferError, transfer_item

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.post("/items/{item_id}/transfer", response_model=TransferOut)
def transfer(
    item_id: int,
    payload: TransferRequest,
    db: Session = Depends(get_db),
    household_id: int = Depends(get_household_id),
):
    try:
        return run_in_transaction(
            db,
            lambda s: transfer_item(s, household_id, item_id, payload.target_sheet_id, payload.amount, payload.mode),
        )
    except TransferError as e:
        raise HTTPException(status_code=404 if e.code in NOT_FOUND else 400, detail={"code": e.code, "message": str(e)})


@router.post("/shopping-list", response_model=ShoppingListOut)
def shopping_list(
    db: Session = Depends(get_db),
    household_id: int = Depends(get_household_id),
    user_id: int = Depends(get_user_id),
):
    return run_in_transaction(db, lambda s: generate_shopping_list(s, household_id, user_id))


@router.post("/shopping-items/{shopping_item_id}/purchased", response_model=ShoppingListItemOut)
def purchased(
    shopping_item_id: int,
    db: Session = Depends(get_db),
    household_id: int = Depends(get_household_id),
):
    try:
        return run_in_transaction(db, lambda s: mark_purchased(s, household_id, shopping_item_id))
    except ShoppingError as e:
        raise HTTPException(status_code=404, detail=str(e))
