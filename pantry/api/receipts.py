from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from pantry.api.deps import get_db, get_household_id, get_user_id
from pantry.schemas.receipt import ConfirmRequest, ConfirmResult, ExtractedReceipt, ScanResult
from pantry.services.purchase_ledger import LedgerError
from pantry.services.receipt_processor import confirm_receipt, scan_receipt

router = APIRouter(prefix="/receipts", tags=["receipts"])


@router.post("/scan", response_model=ScanResult)
def scan(
    extraction: ExtractedReceipt,
    db: Session = Depends(get_db),
    household_id: int = Depends(get_household_id),
):
    return scan_receipt(db, household_id, extraction)


@router.post("/confirm", response_model=ConfirmResult, status_code=status.HTTP_201_CREATED)
def confirm(
    payload: ConfirmRequest,
    db: Session = Depends(get_db),
    household_id: int = Depends(get_household_id),
    user_id: int = Depends(get_user_id),
):
    try:
        return confirm_receipt(db, household_id, user_id, payload)
    except LedgerError as e:
        raise HTTPException(status_code=404, detail=str(e))
