"""Import workflows: pasted backups, screenshots and smart-fill."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from flipledger.application.collaborators import FieldExtractor, ScreenshotExtractor
from flipledger.domain.lifecycle import LifecycleState, count_by_state
from flipledger.domain.record import Record
from flipledger.importers.json_backup import ImportMode, ImportOutcome, reconcile_import
from flipledger.importers.prefill import record_from_prefill
from flipledger.importers.screenshot import Leg, records_from_extracted_items
from flipledger.runtime import AIServiceError, RecordStore, get_logger

logger = get_logger(__name__)

PasteImportStatus = Literal["imported", "parse_error", "not_array", "confirmation_required"]
ScreenshotImportStatus = Literal["imported", "nothing_found", "service_unavailable"]
SmartFillStatus = Literal["prefilled", "empty_text", "service_unavailable"]


@dataclass(frozen=True)
class PasteImportRequest:
    """Inputs for importing pasted backup text.

    ``REPLACE`` discards the current collection, so it only runs when
    ``confirm_replace`` is set.
    """

    text: str
    mode: ImportMode = "MERGE"
    confirm_replace: bool = False
    today: date | None = None


@dataclass(frozen=True)
class PasteImportResult:
    status: PasteImportStatus
    mode: ImportMode
    counts: dict[LifecycleState, int] = field(default_factory=dict)
    added: int = 0
    skipped_existing: int = 0
    skipped_invalid: int = 0
    error: str | None = None
    prompt: str | None = None


def _summary(outcome: ImportOutcome) -> str:
    counts = outcome.counts
    return (
        f"{counts.get(LifecycleState.CLOSED_LOOP, 0)} closed-loop, "
        f"{counts.get(LifecycleState.INVENTORY, 0)} inventory, "
        f"{counts.get(LifecycleState.ORPHAN_SALE, 0)} orphan sale, "
        f"{counts.get(LifecycleState.UNCLASSIFIED, 0)} uncategorized"
    )


def run_paste_import(store: RecordStore, request: PasteImportRequest) -> PasteImportResult:
    """Parse, repair and install pasted records."""

    def transition(records: tuple[Record, ...]) -> tuple[tuple[Record, ...], ImportOutcome]:
        outcome = reconcile_import(request.text, records, request.mode, request.today)
        if outcome.mode == "REPLACE" and not request.confirm_replace:
            # Preview only: keep the collection as it is.
            return records, outcome
        return outcome.records, outcome

    outcome = store.apply(transition)

    if not outcome.ok:
        logger.info("Import rejected: %s", outcome.error)
        return PasteImportResult(status=outcome.status, mode=outcome.mode, error=outcome.error)

    if outcome.mode == "REPLACE" and not request.confirm_replace:
        return PasteImportResult(
            status="confirmation_required",
            mode=outcome.mode,
            counts=outcome.counts,
            added=outcome.added,
            skipped_invalid=outcome.skipped_invalid,
            prompt=(
                f"Replace all {len(store)} current records with {outcome.added} imported records "
                f"({_summary(outcome)})? This cannot be undone."
            ),
        )

    logger.info("Imported (%s): %s", outcome.mode, _summary(outcome))
    return PasteImportResult(
        status="imported",
        mode=outcome.mode,
        counts=outcome.counts,
        added=outcome.added,
        skipped_existing=outcome.skipped_existing,
        skipped_invalid=outcome.skipped_invalid,
    )


@dataclass(frozen=True)
class ScreenshotImportRequest:
    images: Sequence[tuple[str, bytes]]
    leg: Leg
    today: date | None = None


@dataclass(frozen=True)
class ScreenshotImportResult:
    status: ScreenshotImportStatus
    records: list[Record] = field(default_factory=list)
    counts: dict[LifecycleState, int] = field(default_factory=dict)
    error: str | None = None


async def run_screenshot_import(
    store: RecordStore,
    extractor: ScreenshotExtractor,
    request: ScreenshotImportRequest,
) -> ScreenshotImportResult:
    """Extract items from screenshots and add them as new records (newest first)."""
    try:
        items = await extractor.extract_screenshot_items(request.images, request.leg)
    except AIServiceError as exc:
        logger.warning("Screenshot extraction failed: %s", exc)
        return ScreenshotImportResult(status="service_unavailable", error=str(exc))

    new_records = records_from_extracted_items(items, request.leg, request.today)
    if not new_records:
        return ScreenshotImportResult(status="nothing_found")

    store.apply(lambda records: (tuple(new_records) + records, None))
    logger.info("Added %d %s records from screenshots", len(new_records), request.leg)
    return ScreenshotImportResult(status="imported", records=new_records, counts=count_by_state(new_records))


@dataclass(frozen=True)
class SmartFillResult:
    status: SmartFillStatus
    draft: Record | None = None
    error: str | None = None


async def run_smart_fill(extractor: FieldExtractor, text: str, today: date | None = None) -> SmartFillResult:
    """Draft a new record from free text. The draft is not stored."""
    if not text.strip():
        return SmartFillResult(status="empty_text", error="Nothing to analyze")
    try:
        fields = await extractor.extract_fields(text)
    except AIServiceError as exc:
        logger.warning("Smart fill failed: %s", exc)
        return SmartFillResult(status="service_unavailable", error=str(exc))
    return SmartFillResult(status="prefilled", draft=record_from_prefill(fields, today))
