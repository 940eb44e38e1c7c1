from decimal import Decimal
from functools import partial

from sqlalchemy.orm import Session

from pantry.core.db import run_in_transaction
from pantry.core.logging import get_logger
from pantry.schemas.purchase import PurchaseBase, PurchaseCreate
from pantry.schemas.receipt import (
    ConfirmLineResult,
    ConfirmRequest,
    ConfirmResult,
    ExtractedReceipt,
    ReconcileOut,
    ScanResult,
)
from pantry.services.corrections import CorrectionStore
from pantry.services.matcher import EntityMatcher
from pantry.services.normalizer import normalize_receipt
from pantry.services.purchase_ledger import (
    create_purchase,
    create_stop_for_receipt,
    get_stop,
    parse_receipt_date,
)
from pantry.services.reconciler import ReconcileError, reconcile_purchase

logger = get_logger(__name__)


def scan_receipt(db: Session, household_id: int, extraction: ExtractedReceipt | dict) -> ScanResult:
    """normalize -> corrections -> matching; read-only."""
    if not isinstance(extraction, ExtractedReceipt):
        extraction = ExtractedReceipt.model_validate(extraction)

    receipt = normalize_receipt(extraction)

    # corrections first, so corrected names are what gets matched
    corrections = CorrectionStore(db, household_id)
    receipt = receipt.model_copy(update={"items": [corrections.apply(line) for line in receipt.items]})

    result = EntityMatcher(db, household_id).annotate(receipt)
    logger.info(
        "scanned receipt for household %s: store=%r (%s), %d lines",
        household_id, result.store.name, "new" if result.store.is_new else result.store.id, len(result.items),
    )
    return result


def confirm_receipt(db: Session, household_id: int, user_id: int, request: ConfirmRequest) -> ConfirmResult:
    """Persist the user-confirmed lines of one receipt and push them into inventory.

    Each purchase is committed before it is reconciled; a reconcile failure is
    reported on its line and leaves the purchase in place. A line without
    ``units`` is recorded with its confirmed quantity as units.
    """
    stop_id = request.stop_id
    if stop_id is not None:
        # an unknown stop fails the request before anything is written
        get_stop(db, household_id, stop_id)
    elif request.lines:
        stop = create_stop_for_receipt(
            db, household_id, user_id, request.store.id, request.store, request.transaction
        )
        stop_id = stop.id

    corrections = CorrectionStore(db, household_id)
    purchase_date = parse_receipt_date(request.transaction.date)
    fields = set(PurchaseBase.model_fields)

    results = []
    for line in request.lines:
        if line.original is not None:
            corrections.record(line.original, line.as_extracted())

        data = PurchaseCreate(
            **line.model_dump(include=fields),
            stop_id=stop_id,
            purchase_date=purchase_date,
        )
        if data.units is None:
            data.units = Decimal(line.quantity)
        if data.receipt_item is None and line.original is not None and line.original.raw_text:
            data.receipt_item = line.original.raw_text

        purchase = create_purchase(db, household_id, user_id, data)
        result = ConfirmLineResult(purchase_id=purchase.id, budget_entry_id=purchase.budget_entry_id)

        try:
            outcome = run_in_transaction(db, partial(reconcile_purchase, purchase_id=purchase.id))
            result.reconcile = ReconcileOut.model_validate(outcome)
        except ReconcileError as e:
            logger.warning("purchase %s kept but not reconciled: %s", purchase.id, e)
            result.error = str(e)

        results.append(result)

    return ConfirmResult(stop_id=stop_id, lines=results)
