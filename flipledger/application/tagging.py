"""Background smart-tagging of saved records.

A tag request runs as an asyncio task keyed by record id. Requesting a tag
again for the same id cancels the older task. When a result arrives it is
applied with ``patch_tag_if_present``: if the record was deleted, merged
away or renamed in the meantime nothing happens.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass

from flipledger.application.collaborators import Categorizer
from flipledger.domain.reconcile import UpdateOutcome, patch_tag_if_present
from flipledger.domain.record import Record
from flipledger.runtime import AIServiceError, RecordStore, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TagRequest:
    record_id: str
    name: str


class AutoTagger:
    """Schedules categorization calls and patches their results into the store."""

    def __init__(self, store: RecordStore, categorizer: Categorizer) -> None:
        self.store = store
        self.categorizer = categorizer
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def schedule(self, record: Record) -> asyncio.Task[None]:
        """Start tagging one record; must be called from a running event loop."""
        previous = self._tasks.get(record.id)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.get_running_loop().create_task(self._tag([TagRequest(record.id, record.name)]))
        self._tasks[record.id] = task
        task.add_done_callback(lambda done, record_id=record.id: self._forget(record_id, done))
        return task

    def schedule_untagged(self, records: Iterable[Record]) -> asyncio.Task[None] | None:
        """Tag every record without a smart tag in one categorization call."""
        requests = [TagRequest(r.id, r.name) for r in records if not r.smart_tag and r.name.strip()]
        if not requests:
            return None
        return asyncio.get_running_loop().create_task(self._tag(requests))

    def _forget(self, record_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(record_id) is task:
            del self._tasks[record_id]

    async def _tag(self, requests: list[TagRequest]) -> None:
        names = sorted({request.name for request in requests})
        try:
            tags = await self.categorizer.categorize(names)
        except AIServiceError as exc:
            logger.warning("Auto-tagging of %d record(s) failed: %s", len(requests), exc)
            return

        for request in requests:
            tag = tags.get(request.name)
            if not tag:
                continue
            outcome: UpdateOutcome = self.store.apply_outcome(
                lambda records, request=request, tag=tag: patch_tag_if_present(
                    records,
                    request.record_id,
                    request.name,
                    tag,
                )
            )
            if outcome.status == "not_found":
                logger.debug("Dropped tag for %s: record gone or renamed", request.record_id)

    async def wait(self) -> None:
        """Wait for all per-record tasks scheduled so far (cancelled ones included)."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
