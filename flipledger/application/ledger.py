"""Record workflows: save, quick edit, match, merge and delete/split."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from flipledger.domain.lifecycle import LifecycleState, filter_by_state
from flipledger.domain.reconcile import (
    DeleteStatus,
    DeletionPlan,
    MergeStatus,
    SplitFidelity,
    UpdateStatus,
    add_record,
    apply_field_update,
    delete_record,
    merge_records,
    normalize_record,
    replace_record,
)
from flipledger.domain.record import Record
from flipledger.matching.keyword_categories import KeywordRuleLayers
from flipledger.matching.matcher import (
    MatchConfig,
    MatchResult,
    purchase_candidates,
    rank_sale_candidates,
    sale_candidates,
    search_records,
)
from flipledger.runtime import RecordStore, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SaveRecordRequest:
    """Inputs for saving a record from the entry form."""

    record: Record
    is_new: bool = True
    today: date | None = None


@dataclass(frozen=True)
class RecordResult:
    """Outcome of a save or a quick edit."""

    status: UpdateStatus
    record: Record | None = None
    error: str | None = None


def run_save_record(store: RecordStore, request: SaveRecordRequest) -> RecordResult:
    """Normalize a form record and add it (newest first) or replace the existing one."""
    record = normalize_record(request.record, request.today)
    if request.is_new:
        outcome = store.apply_outcome(lambda records: add_record(records, record))
    else:
        outcome = store.apply_outcome(lambda records: replace_record(records, record))

    if outcome.status == "duplicate_id":
        return RecordResult(
            status=outcome.status,
            record=outcome.record,
            error=f"Record id already exists: {record.id}",
        )
    if outcome.status == "not_found":
        return RecordResult(status=outcome.status, error=f"Record not found: {record.id}")
    return RecordResult(status=outcome.status, record=outcome.record)


@dataclass(frozen=True)
class FieldUpdateRequest:
    """Inline edit of one field by its snapshot name (e.g. ``sellPrice``)."""

    record_id: str
    field_name: str
    value: Any
    today: date | None = None


def run_field_update(store: RecordStore, request: FieldUpdateRequest) -> RecordResult:
    outcome = store.apply_outcome(
        lambda records: apply_field_update(
            records,
            request.record_id,
            request.field_name,
            request.value,
            request.today,
        )
    )
    if outcome.status == "invalid_field":
        return RecordResult(
            status=outcome.status,
            record=outcome.record,
            error=f"Invalid value for field '{request.field_name}'",
        )
    if outcome.status == "not_found":
        return RecordResult(status=outcome.status, error=f"Record not found: {request.record_id}")
    return RecordResult(status=outcome.status, record=outcome.record)


@dataclass(frozen=True)
class CandidatesRequest:
    """Inputs for the reconciliation view."""

    anchor_id: str | None = None
    query: str | None = None


@dataclass(frozen=True)
class CandidatesResult:
    """Both columns of the reconciliation view.

    ``sales`` is ordered by similarity to the anchor when one is selected and
    by recency otherwise.
    """

    purchases: list[Record] = field(default_factory=list)
    sales: list[MatchResult] = field(default_factory=list)
    anchor: Record | None = None


def run_match_candidates(
    records: tuple[Record, ...],
    request: CandidatesRequest,
    rule_layers: KeywordRuleLayers | None = None,
    config: MatchConfig | None = None,
) -> CandidatesResult:
    purchases = search_records(purchase_candidates(records), request.query)
    sales = search_records(sale_candidates(records), request.query)

    anchor = None
    if request.anchor_id:
        anchor = next((r for r in purchase_candidates(records) if r.id == request.anchor_id), None)
        if anchor is None:
            logger.debug("Anchor %s is not a pending purchase; using recency order", request.anchor_id)

    return CandidatesResult(
        purchases=purchases,
        sales=rank_sale_candidates(anchor, sales, config, rule_layers),
        anchor=anchor,
    )


@dataclass(frozen=True)
class MergeRequest:
    purchase_id: str
    sale_id: str


@dataclass(frozen=True)
class MergeResult:
    status: MergeStatus
    merged: Record | None = None
    error: str | None = None


def run_merge(store: RecordStore, request: MergeRequest) -> MergeResult:
    """Merge an orphan sale into a purchase. Runs without confirmation; it can be undone by split."""
    outcome = store.apply_outcome(lambda records: merge_records(records, request.purchase_id, request.sale_id))
    if outcome.status == "not_found":
        return MergeResult(status=outcome.status, error="Purchase or sale record not found")
    if outcome.status == "ineligible":
        return MergeResult(status=outcome.status, error=outcome.reason)
    return MergeResult(status=outcome.status, merged=outcome.merged)


@dataclass(frozen=True)
class DeleteRequest:
    """Delete or split a record. ``confirmation`` must be one of the plan's tokens."""

    record_id: str
    confirmation: str | None = None


@dataclass(frozen=True)
class DeleteResult:
    status: DeleteStatus
    plan: DeletionPlan | None = None
    removed: Record | None = None
    purchase: Record | None = None
    sale: Record | None = None
    fidelity: SplitFidelity | None = None
    message: str | None = None


def run_delete(store: RecordStore, request: DeleteRequest) -> DeleteResult:
    """Delete a record, or split a closed-loop one, once the user confirmed."""
    outcome = store.apply_outcome(lambda records: delete_record(records, request.record_id, request.confirmation))

    if outcome.status == "not_found":
        return DeleteResult(status=outcome.status, message=f"Record not found: {request.record_id}")
    if outcome.status == "confirmation_required":
        assert outcome.plan is not None
        return DeleteResult(status=outcome.status, plan=outcome.plan, message=outcome.plan.prompt)
    if outcome.status == "split":
        split = outcome.split
        assert split is not None
        message = None
        if split.degraded:
            message = (
                "The original sale name could not be recovered from this record; "
                "the restored sale reuses the current name."
            )
        return DeleteResult(
            status=outcome.status,
            plan=outcome.plan,
            purchase=split.purchase,
            sale=split.sale,
            fidelity=split.fidelity,
            message=message,
        )
    return DeleteResult(status=outcome.status, plan=outcome.plan, removed=outcome.removed)


def list_records(records: tuple[Record, ...], state: LifecycleState | None = None) -> list[Record]:
    """Records for the list view, optionally filtered by lifecycle state."""
    return filter_by_state(records, state)
