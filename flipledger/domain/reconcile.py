"""State transitions on the record collection: merge, split, delete and edits.

Every function takes the current collection and returns a new one inside an
outcome object; nothing here mutates its input or performs I/O. Unknown ids
are silent no-ops because a background caller may legitimately arrive after
the target was merged or deleted.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Literal

from flipledger.domain.lifecycle import LifecycleState, classify
from flipledger.domain.record import (
    DEFAULT_SHIPPING_METHOD,
    MERGE_NOTE_SEPARATOR,
    UNMERGED_NOTE_PREFIX,
    ZERO,
    MergeProvenance,
    Record,
    clamp_money,
    default_shipping_cost,
    new_record_id,
    normalize_category,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

Records = tuple[Record, ...]

MergeStatus = Literal["merged", "not_found", "ineligible"]
SplitStatus = Literal["split", "not_found", "not_closed_loop"]
SplitFidelity = Literal["provenance", "notes", "degraded"]
DeleteStatus = Literal["deleted", "split", "not_found", "confirmation_required"]
UpdateStatus = Literal["updated", "not_found", "invalid_field", "duplicate_id"]

# Confirmation tokens. Permanent deletion needs the stronger, explicit token.
CONFIRM_SPLIT = "split"
CONFIRM_DELETE_PERMANENTLY = "delete-permanently"


def _find(records: Sequence[Record], record_id: str) -> Record | None:
    for record in records:
        if record.id == record_id:
            return record
    return None


# --- Merge -----------------------------------------------------------------


@dataclass(frozen=True)
class MergeOutcome:
    records: Records
    status: MergeStatus
    merged: Record | None = None
    reason: str = ""


def merge_records(records: Sequence[Record], purchase_id: str, sale_id: str) -> MergeOutcome:
    """Fuse a purchase record and an orphan sale into one closed-loop record.

    The purchase keeps its id and position and absorbs the sale leg; the sale
    record is removed. Its identity survives in the structured provenance and
    in the human-readable notes suffix.
    """
    current = tuple(records)
    purchase = _find(current, purchase_id)
    sale = _find(current, sale_id)
    if purchase is None or sale is None:
        logger.debug("Merge skipped, id not found: purchase=%s sale=%s", purchase_id, sale_id)
        return MergeOutcome(records=current, status="not_found")

    if purchase_id == sale_id:
        return MergeOutcome(records=current, status="ineligible", reason="cannot merge a record with itself")
    if purchase.sell_price > ZERO:
        return MergeOutcome(records=current, status="ineligible", reason="purchase record already has a sale")
    if classify(sale) is not LifecycleState.ORPHAN_SALE:
        return MergeOutcome(records=current, status="ineligible", reason="sale record is not an orphan sale")

    shipping_method = sale.shipping_method or DEFAULT_SHIPPING_METHOD
    shipping_cost = sale.shipping_cost if sale.shipping_cost is not None else default_shipping_cost(shipping_method)
    sale_date = sale.sell_date or sale.date

    merged = replace(
        purchase,
        sell_price=sale.sell_price,
        is_sold=True,
        sell_date=sale_date,
        notes=f"{purchase.notes}{MERGE_NOTE_SEPARATOR}{sale.name}",
        shipping_cost=shipping_cost,
        shipping_method=shipping_method,
        provenance=MergeProvenance(
            sale_id=sale.id,
            sale_name=sale.name,
            sale_date=sale_date,
            purchase_notes=purchase.notes,
        ),
    )

    updated = tuple(merged if r.id == purchase_id else r for r in current if r.id != sale_id)
    logger.info("Merged sale '%s' into purchase '%s'", sale.name, purchase.name)
    return MergeOutcome(records=updated, status="merged", merged=merged)


# --- Split -----------------------------------------------------------------


@dataclass(frozen=True)
class SplitOutcome:
    records: Records
    status: SplitStatus
    purchase: Record | None = None
    sale: Record | None = None
    fidelity: SplitFidelity | None = None

    @property
    def degraded(self) -> bool:
        """True when the original sale name could not be recovered."""
        return self.fidelity == "degraded"


def _recover_halves(record: Record) -> tuple[str, str, SplitFidelity]:
    """Return (purchase notes, sale name, fidelity) for a closed-loop record."""
    if record.provenance is not None:
        return record.provenance.purchase_notes, record.provenance.sale_name, "provenance"

    before, separator, after = record.notes.rpartition(MERGE_NOTE_SEPARATOR)
    if separator:
        return before.strip(), after.strip(), "notes"

    return record.notes, record.name, "degraded"


def split_record(records: Sequence[Record], record_id: str, new_id: str | None = None) -> SplitOutcome:
    """Undo a merge: restore the purchase in place and append the sale.

    Without provenance or the notes audit suffix the current name is used for
    both halves; the outcome reports ``fidelity="degraded"`` in that case.
    """
    current = tuple(records)
    record = _find(current, record_id)
    if record is None:
        return SplitOutcome(records=current, status="not_found")
    if classify(record) is not LifecycleState.CLOSED_LOOP:
        return SplitOutcome(records=current, status="not_closed_loop")

    buy_notes, sale_name, fidelity = _recover_halves(record)
    if fidelity == "degraded":
        logger.warning(
            "Split of '%s' has no merge audit trail; restored sale reuses the current name",
            record.name,
        )

    restored_purchase = replace(
        record,
        sell_price=ZERO,
        is_sold=False,
        sell_date=None,
        shipping_cost=None,
        shipping_method=None,
        notes=buy_notes,
        provenance=None,
    )

    sale_date = record.sell_date or record.date
    restored_sale = Record(
        id=new_id or new_record_id(),
        name=sale_name,
        date=sale_date,
        category=record.category,
        buy_price=ZERO,
        sell_price=record.sell_price,
        is_sold=True,
        sell_date=sale_date,
        notes=f"{UNMERGED_NOTE_PREFIX}{record.name}",
        shipping_cost=record.shipping_cost,
        shipping_method=record.shipping_method,
        smart_tag=record.smart_tag,
    )

    updated = tuple(restored_purchase if r.id == record_id else r for r in current) + (restored_sale,)
    logger.info("Split '%s' into purchase and sale '%s' (%s)", record.name, sale_name, fidelity)
    return SplitOutcome(
        records=updated,
        status="split",
        purchase=restored_purchase,
        sale=restored_sale,
        fidelity=fidelity,
    )


# --- Delete ----------------------------------------------------------------


@dataclass(frozen=True)
class DeletionPlan:
    """What deleting a record would do and which confirmations are accepted."""

    record_id: str
    state: LifecycleState
    reversible: bool
    accepted_confirmations: frozenset[str]
    prompt: str


def plan_deletion(record: Record) -> DeletionPlan:
    """Choose the deletion flow from the record's lifecycle state."""
    state = classify(record)
    if state is LifecycleState.CLOSED_LOOP:
        return DeletionPlan(
            record_id=record.id,
            state=state,
            reversible=True,
            accepted_confirmations=frozenset({CONFIRM_SPLIT, CONFIRM_DELETE_PERMANENTLY}),
            prompt=(
                f"'{record.name}' is a matched closed-loop trade. Confirm '{CONFIRM_SPLIT}' to unmerge it "
                f"into a purchase record and a sale record (no data is lost), or "
                f"'{CONFIRM_DELETE_PERMANENTLY}' to remove both legs for good."
            ),
        )
    label = "purchase record" if record.buy_price > ZERO else "sale record"
    return DeletionPlan(
        record_id=record.id,
        state=state,
        reversible=False,
        accepted_confirmations=frozenset({CONFIRM_DELETE_PERMANENTLY}),
        prompt=f"Permanently delete {label} '{record.name}'? This cannot be undone. "
        f"Confirm with '{CONFIRM_DELETE_PERMANENTLY}'.",
    )


@dataclass(frozen=True)
class DeleteOutcome:
    records: Records
    status: DeleteStatus
    plan: DeletionPlan | None = None
    split: SplitOutcome | None = None
    removed: Record | None = None


def delete_record(records: Sequence[Record], record_id: str, confirmation: str | None) -> DeleteOutcome:
    """Delete or split a record depending on its state and the confirmation given.

    Closed-loop records are split with ``"split"``; any record is removed for
    good only with ``"delete-permanently"``. Anything else changes nothing and
    returns the plan so the caller can ask the user.
    """
    current = tuple(records)
    record = _find(current, record_id)
    if record is None:
        return DeleteOutcome(records=current, status="not_found")

    plan = plan_deletion(record)
    if confirmation not in plan.accepted_confirmations:
        return DeleteOutcome(records=current, status="confirmation_required", plan=plan)

    if confirmation == CONFIRM_SPLIT:
        split = split_record(current, record_id)
        return DeleteOutcome(records=split.records, status="split", plan=plan, split=split)

    logger.info("Permanently deleted %s record '%s'", plan.state.label, record.name)
    return DeleteOutcome(
        records=tuple(r for r in current if r.id != record_id),
        status="deleted",
        plan=plan,
        removed=record,
    )


# --- Direct edits ----------------------------------------------------------


@dataclass(frozen=True)
class UpdateOutcome:
    records: Records
    status: UpdateStatus
    record: Record | None = None


def normalize_record(record: Record, today: date | None = None) -> Record:
    """Repair sale-leg consistency on a record entered by hand.

    A positive sell price implies sold; a sold record gets a sell date and
    shipping defaults; an unsold record carries no sale-only fields.
    """
    today = today or date.today()
    buy_price = clamp_money(record.buy_price)
    sell_price = clamp_money(record.sell_price)
    is_sold = record.is_sold or sell_price > ZERO

    if not is_sold:
        return replace(
            record,
            buy_price=buy_price,
            sell_price=sell_price,
            is_sold=False,
            sell_date=None,
            shipping_cost=None,
            shipping_method=None,
        )

    method = record.shipping_method or DEFAULT_SHIPPING_METHOD
    if record.shipping_cost is None or not record.shipping_method:
        cost = default_shipping_cost(method)
    else:
        cost = clamp_money(record.shipping_cost)
    return replace(
        record,
        buy_price=buy_price,
        sell_price=sell_price,
        is_sold=True,
        sell_date=record.sell_date or today,
        shipping_cost=cost,
        shipping_method=method,
    )


def add_record(records: Sequence[Record], record: Record) -> UpdateOutcome:
    """Insert a new record at the front (newest first)."""
    current = tuple(records)
    if _find(current, record.id) is not None:
        return UpdateOutcome(records=current, status="duplicate_id", record=record)
    return UpdateOutcome(records=(record,) + current, status="updated", record=record)


def replace_record(records: Sequence[Record], record: Record) -> UpdateOutcome:
    """Swap in an edited record with the same id."""
    current = tuple(records)
    if _find(current, record.id) is None:
        return UpdateOutcome(records=current, status="not_found")
    return UpdateOutcome(
        records=tuple(record if r.id == record.id else r for r in current),
        status="updated",
        record=record,
    )


# JSON field name -> attribute for inline single-field edits.
EDITABLE_FIELDS: dict[str, str] = {
    "name": "name",
    "category": "category",
    "buyPrice": "buy_price",
    "sellPrice": "sell_price",
    "shippingCost": "shipping_cost",
    "shippingMethod": "shipping_method",
    "notes": "notes",
    "date": "date",
    "sellDate": "sell_date",
    "smartTag": "smart_tag",
}


def _edited(record: Record, field_name: str, value: Any, today: date) -> Record | None:
    if field_name == "sellPrice":
        sell_price = clamp_money(value)
        updated = replace(record, sell_price=sell_price, is_sold=sell_price > ZERO)
        if updated.is_sold and updated.sell_date is None:
            updated = replace(updated, sell_date=today)
            if not updated.shipping_method:
                updated = replace(
                    updated,
                    shipping_method=DEFAULT_SHIPPING_METHOD,
                    shipping_cost=default_shipping_cost(DEFAULT_SHIPPING_METHOD),
                )
        return updated
    if field_name in {"buyPrice", "shippingCost"}:
        return replace(record, **{EDITABLE_FIELDS[field_name]: clamp_money(value)})
    if field_name == "shippingMethod":
        method = str(value).strip().upper() if value else None
        if method and method != "CUSTOM":
            return replace(record, shipping_method=method, shipping_cost=default_shipping_cost(method))
        return replace(record, shipping_method=method)
    if field_name == "category":
        return replace(record, category=normalize_category(value))
    if field_name in {"date", "sellDate"}:
        parsed = parse_iso_date(value)
        if parsed is None and field_name == "date":
            return None
        return replace(record, **{EDITABLE_FIELDS[field_name]: parsed})
    if field_name == "smartTag":
        tag = str(value).strip() if value is not None else ""
        return replace(record, smart_tag=tag or None)
    return replace(record, **{EDITABLE_FIELDS[field_name]: "" if value is None else str(value)})


def apply_field_update(
    records: Sequence[Record],
    record_id: str,
    field_name: str,
    value: Any,
    today: date | None = None,
) -> UpdateOutcome:
    """Inline edit of one field, keyed by its snapshot (JSON) name.

    Setting ``sellPrice`` also sets ``isSold``; a record that becomes sold
    without a sell date gets today's date and, if it has no shipping method,
    the default method and cost.
    """
    current = tuple(records)
    record = _find(current, record_id)
    if record is None:
        return UpdateOutcome(records=current, status="not_found")
    if field_name not in EDITABLE_FIELDS:
        return UpdateOutcome(records=current, status="invalid_field", record=record)

    updated = _edited(record, field_name, value, today or date.today())
    if updated is None:
        return UpdateOutcome(records=current, status="invalid_field", record=record)
    return replace_record(current, updated)


def patch_tag_if_present(records: Sequence[Record], record_id: str, name: str, tag: str) -> UpdateOutcome:
    """Attach a smart tag only if the record still exists under the same name.

    Used when a background categorization finishes after the user may have
    deleted, merged or renamed the record; a miss is a no-op.
    """
    current = tuple(records)
    record = _find(current, record_id)
    if record is None or record.name != name:
        return UpdateOutcome(records=current, status="not_found")
    if record.smart_tag == tag:
        return UpdateOutcome(records=current, status="updated", record=record)
    return replace_record(current, replace(record, smart_tag=tag))
