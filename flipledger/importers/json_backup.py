"""JSON backup import and export.

Import accepts text that should contain a JSON array of record objects,
possibly wrapped in prose by whatever tool produced it. Every element is
repaired into a valid Record before it can reach the collection; nothing in
this module raises on bad input.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from flipledger.domain.lifecycle import LifecycleState, count_by_state
from flipledger.domain.record import (
    DEFAULT_SHIPPING_METHOD,
    ZERO,
    MergeProvenance,
    Record,
    clamp_money,
    coerce_money,
    default_shipping_cost,
    new_record_id,
    normalize_category,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

ImportMode = Literal["MERGE", "REPLACE"]
ImportStatus = Literal["imported", "parse_error", "not_array"]

UNKNOWN_ITEM_NAME = "Unknown Item"
EXPECTED_SHAPE_MESSAGE = "Could not parse JSON. Paste the complete array [...] of records."


@dataclass(frozen=True)
class ImportOutcome:
    """Structured result of one import attempt."""

    status: ImportStatus
    mode: ImportMode
    records: tuple[Record, ...]
    error: str | None = None
    counts: dict[LifecycleState, int] = field(default_factory=dict)
    added: int = 0
    skipped_existing: int = 0
    skipped_invalid: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "imported"


def _optional_text(raw: Any) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _parse_provenance(raw: Any) -> MergeProvenance | None:
    if not isinstance(raw, Mapping):
        return None
    sale_id = _optional_text(raw.get("saleId"))
    sale_name = _optional_text(raw.get("saleName"))
    if sale_id is None or sale_name is None:
        return None
    notes = raw.get("purchaseNotes")
    return MergeProvenance(
        sale_id=sale_id,
        sale_name=sale_name,
        sale_date=parse_iso_date(raw.get("saleDate")),
        purchase_notes=notes if isinstance(notes, str) else "",
    )


def repair_record(raw: Mapping[str, Any], today: date | None = None) -> Record:
    """Build a valid Record from one untrusted JSON object.

    Missing ids get a fresh one, prices are clamped to non-negative amounts,
    a positive sell price implies sold, and sold records get a sell date and
    the shipping defaults when those are missing.
    """
    today = today or date.today()

    buy_price = clamp_money(raw.get("buyPrice"))
    sell_price = clamp_money(raw.get("sellPrice"))
    is_sold = raw.get("isSold") is True or sell_price > ZERO

    acquired = parse_iso_date(raw.get("date")) or today
    sell_date = parse_iso_date(raw.get("sellDate"))
    if is_sold and sell_date is None:
        sell_date = acquired

    method = _optional_text(raw.get("shippingMethod"))
    method = method.upper() if method else None
    cost = coerce_money(raw.get("shippingCost"))
    if cost is not None and cost < ZERO:
        cost = None
    if is_sold:
        if method is None:
            method = DEFAULT_SHIPPING_METHOD
            cost = default_shipping_cost(DEFAULT_SHIPPING_METHOD)
        elif cost is None:
            cost = default_shipping_cost(method)

    notes = raw.get("notes")
    return Record(
        id=_optional_text(raw.get("id")) or new_record_id(),
        name=_optional_text(raw.get("name")) or UNKNOWN_ITEM_NAME,
        date=acquired,
        category=normalize_category(raw.get("category")),
        buy_price=buy_price,
        sell_price=sell_price,
        is_sold=is_sold,
        sell_date=sell_date,
        notes=notes if isinstance(notes, str) else "",
        shipping_cost=cost,
        shipping_method=method,
        smart_tag=_optional_text(raw.get("smartTag")),
        provenance=_parse_provenance(raw.get("mergeProvenance")),
    )


def _extract_json(text: str) -> Any:
    """Parse the first-``[``-to-last-``]`` span, then the whole text.

    Raises:
        ValueError: Neither attempt produced valid JSON.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except ValueError:
            logger.debug("Bracketed span is not valid JSON; trying the whole text")
    return json.loads(text)


def repair_records(items: Sequence[Any], today: date | None = None) -> tuple[list[Record], int]:
    """Repair every object element; return (records, skipped_invalid).

    Non-object elements are skipped. Within one payload the first record for
    an id wins.
    """
    records: list[Record] = []
    seen: set[str] = set()
    skipped = 0
    for item in items:
        if not isinstance(item, Mapping):
            skipped += 1
            continue
        record = repair_record(item, today)
        if record.id in seen:
            skipped += 1
            continue
        seen.add(record.id)
        records.append(record)
    return records, skipped


def reconcile_import(
    text: str,
    current: Sequence[Record],
    mode: ImportMode = "MERGE",
    today: date | None = None,
) -> ImportOutcome:
    """
    Reconcile pasted backup text against the current collection.

    Args:
        text: Raw pasted text, bare JSON array or array wrapped in prose
        current: Current collection
        mode: ``MERGE`` appends records whose id is new; ``REPLACE`` makes the
            repaired records the whole collection
        today: Date used for missing dates

    Returns:
        ImportOutcome. On error ``records`` is the unchanged collection.
    """
    existing = tuple(current)
    if not text or not text.strip():
        return ImportOutcome(status="parse_error", mode=mode, records=existing, error="Import text is empty.")

    try:
        parsed = _extract_json(text)
    except (ValueError, RecursionError):
        return ImportOutcome(status="parse_error", mode=mode, records=existing, error=EXPECTED_SHAPE_MESSAGE)

    if not isinstance(parsed, list):
        return ImportOutcome(
            status="not_array",
            mode=mode,
            records=existing,
            error=f"Expected a JSON array of records, got {type(parsed).__name__}.",
        )

    repaired, skipped_invalid = repair_records(parsed, today)
    counts = count_by_state(repaired)

    if mode == "REPLACE":
        logger.info("Replacing collection of %d with %d imported records", len(existing), len(repaired))
        return ImportOutcome(
            status="imported",
            mode=mode,
            records=tuple(repaired),
            counts=counts,
            added=len(repaired),
            skipped_invalid=skipped_invalid,
        )

    existing_ids = {record.id for record in existing}
    new_records = [record for record in repaired if record.id not in existing_ids]
    skipped_existing = len(repaired) - len(new_records)
    logger.info("Merged %d imported records, %d already present", len(new_records), skipped_existing)
    return ImportOutcome(
        status="imported",
        mode=mode,
        records=existing + tuple(new_records),
        counts=counts,
        added=len(new_records),
        skipped_existing=skipped_existing,
        skipped_invalid=skipped_invalid,
    )


def records_to_json(records: Sequence[Record], indent: int | None = 2) -> str:
    """Serialize records as a JSON array with stable field order."""
    return json.dumps([record.to_dict() for record in records], ensure_ascii=False, indent=indent)


def export_records(records: Sequence[Record]) -> str:
    """Pretty-printed backup text suitable for re-import."""
    return records_to_json(records, indent=2)


def export_filename(today: date | None = None) -> str:
    """Backup file name, e.g. ``trade_data_backup_2024-05-01.json``."""
    return f"trade_data_backup_{(today or date.today()).isoformat()}.json"
