"""Canonicalize a raw receipt extraction.

Numeric coercion already happened in the ExtractedReceipt validators; this
module title-cases shouting OCR text and folds repeated lines (two scans of the
same bread) into one.
"""

import re
import string
from decimal import Decimal

from pantry.core.config import settings
from pantry.core.logging import get_logger
from pantry.schemas.receipt import ExtractedLine, ExtractedReceipt

logger = get_logger(__name__)

CENT = Decimal("0.01")
_WORDS = re.compile(r"(\s+)")


def title_case(text: str | None, acronyms=None) -> str | None:
    """ "TV STAND" -> "TV Stand", "GV WHITE BREAD" -> "Gv White Bread".

    Only fields that are entirely upper-case (and longer than one character) are
    touched; mixed-case text is assumed to be intentional.
    """
    if not text:
        return text
    if len(text) <= 1 or text != text.upper():
        return text

    keep = {a.upper() for a in (acronyms if acronyms is not None else settings.TITLE_CASE_ACRONYMS)}

    # split on whitespace but keep it, so spacing survives the round trip
    parts = []
    for part in _WORDS.split(text):
        core = part.strip(string.punctuation)
        if not core or part.isspace() or core in keep or len(core) <= 1:
            parts.append(part)
        else:
            parts.append(part.replace(core, core.capitalize(), 1))
    return "".join(parts)


def _sum(values) -> Decimal:
    total = Decimal("0")
    for v in values:
        if v is not None:
            total += v
    return total


def merge_lines(lines: list[ExtractedLine], separator: str | None = None) -> ExtractedLine:
    if len(lines) == 1:
        return lines[0]

    sep = settings.MERGED_RAW_TEXT_SEPARATOR if separator is None else separator
    base = lines[0]

    tax = _sum(line.tax_amount for line in lines).quantize(CENT)
    raw = sep.join(line.raw_text for line in lines if line.raw_text)

    return base.model_copy(
        update={
            "quantity": sum(line.quantity for line in lines),
            "total_price": _sum(line.total_price for line in lines).quantize(CENT),
            "tax_amount": tax if tax != 0 else None,
            "raw_text": raw or base.raw_text,
        }
    )


def dedupe_lines(lines: list[ExtractedLine]) -> list[ExtractedLine]:
    groups: dict[tuple[str, str], list[ExtractedLine]] = {}
    for line in lines:
        key = ((line.brand or "").lower(), (line.item or "").lower())
        groups.setdefault(key, []).append(line)

    out = []
    for key, group in groups.items():
        if len(group) > 1:
            logger.info("merging %d lines for brand=%r item=%r", len(group), key[0], key[1])
        out.append(merge_lines(group))
    return out


def normalize_receipt(receipt: ExtractedReceipt) -> ExtractedReceipt:
    store = receipt.store.model_copy(
        update={
            "name": title_case(receipt.store.name),
            "city": title_case(receipt.store.city),
        }
    )

    lines = [
        line.model_copy(update={"brand": title_case(line.brand), "item": title_case(line.item)})
        for line in receipt.items
    ]
    items = dedupe_lines(lines)

    logger.debug("normalized receipt: %d lines -> %d", len(receipt.items), len(items))
    return receipt.model_copy(update={"store": store, "items": items})
