"""Persisted JSON snapshot of the record collection.

The snapshot uses the same field shape as exported backups, so loading runs
every element through the import repair path.

Atomicity: writes target ``records.json.tmp`` first and then ``os.replace``
into place.
"""

from __future__ import annotations

import json
import os
from collections.abc import Sequence
from pathlib import Path

from flipledger.domain.record import Record
from flipledger.importers.json_backup import records_to_json, repair_records
from flipledger.runtime.logging import get_logger
from flipledger.runtime.paths import get_paths

logger = get_logger(__name__)


class JsonSnapshotStorage:
    """Load and save the collection as a JSON array on disk."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else get_paths().snapshot

    def load(self) -> tuple[Record, ...]:
        """Read the snapshot. A missing or unreadable file yields an empty collection."""
        if not self.path.exists():
            logger.info("No snapshot at %s; starting empty", self.path)
            return tuple()

        try:
            parsed = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Could not read snapshot %s: %s", self.path, exc)
            return tuple()

        if not isinstance(parsed, list):
            logger.error("Snapshot %s is not a JSON array; ignoring it", self.path)
            return tuple()

        records, skipped = repair_records(parsed)
        if skipped:
            logger.warning("Skipped %d invalid entries in %s", skipped, self.path)
        logger.debug("Loaded %d records from %s", len(records), self.path)
        return tuple(records)

    def save(self, records: Sequence[Record]) -> None:
        """Write the whole collection, replacing the previous snapshot."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(records_to_json(records), encoding="utf-8")
        os.replace(tmp, self.path)
        logger.debug("Saved %d records to %s", len(records), self.path)
