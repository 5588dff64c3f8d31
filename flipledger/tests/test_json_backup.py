"""Tests for the backup import reconciler and export format."""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

from flipledger.domain.lifecycle import LifecycleState
from flipledger.domain.record import MergeProvenance, Record
from flipledger.importers.json_backup import (
    export_filename,
    export_records,
    reconcile_import,
    repair_record,
)

TODAY = date(2024, 7, 1)


def test_prose_wrapped_array_gets_default_shipping() -> None:
    text = 'here is your file: [ {"name":"X","buyPrice":10,"sellPrice":20,"isSold":true} ] thanks'

    outcome = reconcile_import(text, [], "MERGE", today=TODAY)

    assert outcome.status == "imported"
    assert outcome.added == 1
    record = outcome.records[0]
    assert record.name == "X"
    assert record.shipping_method == "STO"
    assert record.shipping_cost == Decimal("5.6")
    assert record.date == TODAY
    assert record.sell_date == TODAY
    assert outcome.counts[LifecycleState.CLOSED_LOOP] == 1


def test_merge_never_overwrites_existing_id() -> None:
    existing = Record(id="x", name="kept", date=TODAY, buy_price=Decimal("10"))

    outcome = reconcile_import('[{"id":"x","buyPrice":999},{"id":"y","buyPrice":5}]', [existing], "MERGE")

    assert outcome.records[0] == existing
    assert [r.id for r in outcome.records] == ["x", "y"]
    assert outcome.added == 1
    assert outcome.skipped_existing == 1


def test_replace_is_idempotent() -> None:
    source = [
        Record(id="a", name="Switch", date=date(2024, 1, 2), buy_price=Decimal("1200")),
        Record(
            id="b",
            name="相机",
            date=date(2024, 1, 5),
            buy_price=Decimal("3000"),
            sell_price=Decimal("3300.5"),
            is_sold=True,
            sell_date=date(2024, 2, 1),
            shipping_cost=Decimal("18"),
            shipping_method="SF",
            notes=" | Sold Match: Sony A7",
            provenance=MergeProvenance(sale_id="s", sale_name="Sony A7", sale_date=date(2024, 2, 1)),
        ),
    ]
    text = export_records(source)

    first = reconcile_import(text, [], "REPLACE", today=TODAY)
    second = reconcile_import(text, first.records, "REPLACE", today=TODAY)

    assert first.records == second.records
    assert list(first.records) == source


def test_repairs_untrusted_fields() -> None:
    record = repair_record(
        {
            "name": "  ",
            "category": "Gadgets",
            "buyPrice": "abc",
            "sellPrice": -3,
            "isSold": "yes",
            "date": "2024-13-45",
            "shippingCost": True,
        },
        today=TODAY,
    )

    assert record.id
    assert record.name == "Unknown Item"
    assert record.category == "Other"
    assert record.buy_price == Decimal("0")
    assert record.sell_price == Decimal("0")
    assert record.is_sold is False
    assert record.date == TODAY
    assert record.shipping_cost is None


def test_sell_price_implies_sold() -> None:
    record = repair_record({"id": "1", "name": "a", "sellPrice": 50, "date": "2024-03-03"}, today=TODAY)
    assert record.is_sold is True
    assert record.sell_date == date(2024, 3, 3)


def test_method_without_valid_cost_uses_method_default() -> None:
    record = repair_record(
        {"name": "a", "sellPrice": 50, "isSold": True, "shippingMethod": "JD", "shippingCost": "n/a"},
        today=TODAY,
    )
    assert record.shipping_method == "JD"
    assert record.shipping_cost == Decimal("15")


def test_explicit_cost_is_kept() -> None:
    record = repair_record({"name": "a", "sellPrice": 50, "shippingMethod": "SF", "shippingCost": 12})
    assert record.shipping_cost == Decimal("12")


def test_skips_non_objects_and_duplicate_ids() -> None:
    outcome = reconcile_import('[1, "x", {"id":"a","name":"first"}, {"id":"a","name":"second"}]', [], "MERGE")

    assert [r.name for r in outcome.records] == ["first"]
    assert outcome.skipped_invalid == 3


def test_parse_error_names_expected_shape() -> None:
    existing = (Record(id="x", name="x", date=TODAY),)
    outcome = reconcile_import("no json here [oops", existing, "REPLACE")

    assert outcome.status == "parse_error"
    assert "[...]" in (outcome.error or "")
    assert outcome.records == existing


def test_empty_text_is_parse_error() -> None:
    assert reconcile_import("   ", [], "MERGE").status == "parse_error"


def test_object_is_not_an_array() -> None:
    outcome = reconcile_import('{"name": "x"}', [], "MERGE")
    assert outcome.status == "not_array"
    assert not outcome.ok


def test_falls_back_to_whole_text_when_brackets_are_prose() -> None:
    outcome = reconcile_import('{"note": "[draft]"}', [], "MERGE")
    assert outcome.status == "not_array"


def test_export_format() -> None:
    record = Record(
        id="a",
        name="耳机",
        date=date(2024, 1, 2),
        buy_price=Decimal("99.5"),
        smart_tag="影音摄影",
    )
    text = export_records([record])

    assert "耳机" in text
    assert text.startswith("[\n  {")
    payload = json.loads(text)
    assert list(payload[0]) == ["id", "name", "category", "smartTag", "buyPrice", "sellPrice", "isSold", "date", "notes"]
    assert payload[0]["buyPrice"] == 99.5
    assert payload[0]["sellPrice"] == 0


def test_export_filename() -> None:
    assert export_filename(date(2024, 5, 1)) == "trade_data_backup_2024-05-01.json"
