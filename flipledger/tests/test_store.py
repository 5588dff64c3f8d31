"""Tests for the record store and its JSON snapshot."""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

from flipledger.domain.reconcile import merge_records
from flipledger.domain.record import Record
from flipledger.runtime.snapshot_storage import JsonSnapshotStorage
from flipledger.runtime.store import RecordStore

PURCHASE = Record(id="b", name="Kindle", date=date(2024, 2, 1), buy_price=Decimal("300"))
SALE = Record(
    id="s",
    name="Kindle PW5",
    date=date(2024, 2, 9),
    sell_price=Decimal("420"),
    is_sold=True,
    sell_date=date(2024, 2, 9),
    shipping_cost=Decimal("5.6"),
    shipping_method="STO",
)


def test_apply_persists_only_on_change() -> None:
    saved: list[tuple[Record, ...]] = []
    store = RecordStore([PURCHASE, SALE], persist=saved.append)

    missing = store.apply_outcome(lambda records: merge_records(records, "b", "missing"))
    assert missing.status == "not_found"
    assert saved == []

    merged = store.apply_outcome(lambda records: merge_records(records, "b", "s"))
    assert merged.status == "merged"
    assert len(saved) == 1
    assert saved[0] == store.snapshot()
    assert len(store) == 1


def test_add_replace_and_get() -> None:
    store = RecordStore()
    store.add(PURCHASE)
    store.add(SALE)

    assert [r.id for r in store.snapshot()] == ["s", "b"]
    assert store.add(PURCHASE).status == "duplicate_id"

    store.replace(Record(id="b", name="Kindle Oasis", date=date(2024, 2, 1), buy_price=Decimal("300")))
    assert store.get("b") is not None and store.get("b").name == "Kindle Oasis"
    assert store.get("zzz") is None


def test_replace_all() -> None:
    saved: list[tuple[Record, ...]] = []
    store = RecordStore([PURCHASE], persist=saved.append)

    store.replace_all([SALE])

    assert store.snapshot() == (SALE,)
    assert saved == [(SALE,)]


def test_snapshot_round_trip(tmp_path: Path) -> None:
    storage = JsonSnapshotStorage(tmp_path / "data" / "records.json")
    storage.save([PURCHASE, SALE])

    assert storage.load() == (PURCHASE, SALE)
    assert not (tmp_path / "data" / "records.json.tmp").exists()


def test_store_wired_to_snapshot(tmp_path: Path) -> None:
    storage = JsonSnapshotStorage(tmp_path / "records.json")
    store = RecordStore(storage.load(), persist=storage.save)
    store.add(PURCHASE)

    reloaded = RecordStore(JsonSnapshotStorage(tmp_path / "records.json").load())
    assert reloaded.snapshot() == (PURCHASE,)


def test_missing_snapshot_is_empty(tmp_path: Path) -> None:
    assert JsonSnapshotStorage(tmp_path / "nope.json").load() == ()


def test_corrupt_snapshot_is_empty(tmp_path: Path) -> None:
    path = tmp_path / "records.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonSnapshotStorage(path).load() == ()

    path.write_text(json.dumps({"records": []}), encoding="utf-8")
    assert JsonSnapshotStorage(path).load() == ()


def test_default_path_lives_under_data_root(isolated_data_root: Path) -> None:
    assert JsonSnapshotStorage().path == isolated_data_root.resolve() / "records.json"
