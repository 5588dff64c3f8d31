"""Tests for wrapping extracted screenshot items and smart-fill drafts."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from flipledger.domain.lifecycle import LifecycleState, classify
from flipledger.importers.prefill import PrefillFields, record_from_prefill
from flipledger.importers.screenshot import ExtractedItem, records_from_extracted_items

TODAY = date(2024, 8, 1)


def test_buy_leg_creates_inventory() -> None:
    records = records_from_extracted_items(
        [ExtractedItem(name="Switch", price=Decimal("1500"), date=date(2024, 7, 2))],
        "BUY",
        TODAY,
    )

    assert len(records) == 1
    record = records[0]
    assert classify(record) is LifecycleState.INVENTORY
    assert record.date == date(2024, 7, 2)
    assert record.sell_price == Decimal("0")
    assert record.is_sold is False
    assert record.shipping_method is None
    assert record.category == "Electronics"


def test_sell_leg_creates_orphan_sales_with_shipping_defaults() -> None:
    records = records_from_extracted_items([ExtractedItem(name="Lamp", price=Decimal("80"))], "SELL", TODAY)

    record = records[0]
    assert classify(record) is LifecycleState.ORPHAN_SALE
    assert record.is_sold is True
    assert record.sell_date == TODAY
    assert record.shipping_method == "STO"
    assert record.shipping_cost == Decimal("5.6")


def test_duplicates_and_blank_names_are_dropped() -> None:
    items = [
        ExtractedItem(name="Lamp", price=Decimal("80")),
        ExtractedItem(name=" Lamp ", price=Decimal("80")),
        ExtractedItem(name="Lamp", price=Decimal("90")),
        ExtractedItem(name="  ", price=Decimal("10")),
    ]

    records = records_from_extracted_items(items, "BUY", TODAY)

    assert [(r.name, r.buy_price) for r in records] == [("Lamp", Decimal("80")), ("Lamp", Decimal("90"))]
    assert len({r.id for r in records}) == 2


def test_negative_prices_are_clamped() -> None:
    records = records_from_extracted_items([ExtractedItem(name="Refund", price=Decimal("-5"))], "BUY", TODAY)
    assert records[0].buy_price == Decimal("0")


def test_unknown_leg_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown leg"):
        records_from_extracted_items([], "RENT", TODAY)  # type: ignore[arg-type]


def test_prefill_draft() -> None:
    draft = record_from_prefill(PrefillFields(name=" Kindle ", category="toys", buy_price=Decimal("450")), TODAY)

    assert draft.name == "Kindle"
    assert draft.category == "Toys"
    assert draft.buy_price == Decimal("450")
    assert draft.date == TODAY
    assert draft.id


def test_prefill_with_nothing_found() -> None:
    draft = record_from_prefill(PrefillFields(category="gadgets"), TODAY)

    assert draft.name == ""
    assert draft.category == "Other"
    assert draft.buy_price == Decimal("0")
    assert classify(draft) is LifecycleState.UNCLASSIFIED
