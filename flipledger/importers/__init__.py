"""Importers that turn outside data into repaired records.

- json_backup: pasted or exported JSON arrays (MERGE / REPLACE)
- screenshot: items returned by the screenshot extraction service

Importers are pure: they never touch the store or the network. Callers
install the returned collection themselves.
"""

from flipledger.importers.json_backup import (
    ImportOutcome,
    export_filename,
    export_records,
    reconcile_import,
    repair_record,
)
from flipledger.importers.prefill import PrefillFields, record_from_prefill
from flipledger.importers.screenshot import ExtractedItem, records_from_extracted_items

__all__ = [
    "ImportOutcome",
    "reconcile_import",
    "repair_record",
    "export_records",
    "export_filename",
    "PrefillFields",
    "record_from_prefill",
    "ExtractedItem",
    "records_from_extracted_items",
]
