"""Workflows that tie the pure engine to the store and the AI collaborators."""

from flipledger.application.imports import (
    PasteImportRequest,
    ScreenshotImportRequest,
    run_paste_import,
    run_screenshot_import,
    run_smart_fill,
)
from flipledger.application.ledger import (
    CandidatesRequest,
    DeleteRequest,
    FieldUpdateRequest,
    MergeRequest,
    SaveRecordRequest,
    list_records,
    run_delete,
    run_field_update,
    run_match_candidates,
    run_merge,
    run_save_record,
)
from flipledger.application.reporting import run_chart_data, run_narrative_report, run_stats
from flipledger.application.tagging import AutoTagger

__all__ = [
    "SaveRecordRequest",
    "run_save_record",
    "FieldUpdateRequest",
    "run_field_update",
    "CandidatesRequest",
    "run_match_candidates",
    "MergeRequest",
    "run_merge",
    "DeleteRequest",
    "run_delete",
    "list_records",
    "PasteImportRequest",
    "run_paste_import",
    "ScreenshotImportRequest",
    "run_screenshot_import",
    "run_smart_fill",
    "AutoTagger",
    "run_stats",
    "run_chart_data",
    "run_narrative_report",
]
