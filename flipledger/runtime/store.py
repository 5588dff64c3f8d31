"""Process-wide owner of the record collection.

Every mutation goes through ``RecordStore.apply`` which runs a pure domain
transition under a lock (read snapshot, compute next, install next) and then
calls the injected persistence callback when the collection changed.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from flipledger.domain.reconcile import UpdateOutcome, add_record, replace_record
from flipledger.domain.record import Record
from flipledger.runtime.logging import get_logger

logger = get_logger(__name__)

Records = tuple[Record, ...]
PersistCallback = Callable[[Records], None]
OutcomeT = TypeVar("OutcomeT")


class RecordStore:
    """Holds the current collection and serializes mutations."""

    def __init__(self, records: Iterable[Record] = (), persist: PersistCallback | None = None) -> None:
        self._records: Records = tuple(records)
        self._persist = persist
        self._lock = threading.Lock()

    def snapshot(self) -> Records:
        """Current collection (immutable)."""
        return self._records

    def get(self, record_id: str) -> Record | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def __len__(self) -> int:
        return len(self._records)

    def apply(self, transition: Callable[[Records], tuple[Records, OutcomeT]]) -> OutcomeT:
        """Run ``transition(records) -> (new_records, outcome)`` atomically.

        The new collection is installed and persisted only when it differs
        from the current one. Persistence errors propagate to the caller
        after the in-memory collection has been updated.
        """
        with self._lock:
            current = self._records
            new_records, outcome = transition(current)
            new_records = tuple(new_records)
            if new_records == current:
                return outcome
            self._records = new_records
            if self._persist is not None:
                self._persist(new_records)
            return outcome

    def apply_outcome(self, transition: Callable[[Records], Any]) -> Any:
        """Run a domain transition whose outcome carries ``.records``."""

        def run(records: Records) -> tuple[Records, Any]:
            outcome = transition(records)
            return outcome.records, outcome

        return self.apply(run)

    def add(self, record: Record) -> UpdateOutcome:
        return self.apply_outcome(lambda records: add_record(records, record))

    def replace(self, record: Record) -> UpdateOutcome:
        return self.apply_outcome(lambda records: replace_record(records, record))

    def replace_all(self, records: Iterable[Record]) -> Records:
        new_records = tuple(records)
        logger.info("Replacing collection with %d records", len(new_records))
        return self.apply(lambda _current: (new_records, new_records))
