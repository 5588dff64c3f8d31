"""Turn items read from order screenshots into new records."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal

from flipledger.domain.record import (
    DEFAULT_CATEGORY,
    DEFAULT_SHIPPING_METHOD,
    ZERO,
    Record,
    default_shipping_cost,
    new_record_id,
)

Leg = Literal["BUY", "SELL"]

SCREENSHOT_NOTE_PREFIX = "From Screenshot: "


@dataclass(frozen=True)
class ExtractedItem:
    """One line item returned by the screenshot extraction service."""

    name: str
    price: Decimal
    date: date | None = None


def records_from_extracted_items(
    items: Iterable[ExtractedItem],
    leg: Leg,
    today: date | None = None,
) -> list[Record]:
    """
    Wrap extracted items into records for one leg.

    The opposite leg's price is 0. Sale items are sold on their date and get
    the default shipping method and cost. Repeated (name, price) pairs, which
    show up when overlapping screenshots are uploaded together, are dropped.
    """
    if leg not in ("BUY", "SELL"):
        raise ValueError(f"Unknown leg: {leg!r}")
    today = today or date.today()

    records: list[Record] = []
    seen: set[tuple[str, Decimal]] = set()
    for item in items:
        name = item.name.strip()
        if not name:
            continue
        key = (name, item.price)
        if key in seen:
            continue
        seen.add(key)

        item_date = item.date or today
        price = max(item.price, ZERO)
        if leg == "SELL":
            records.append(
                Record(
                    id=new_record_id(),
                    name=name,
                    date=item_date,
                    category=DEFAULT_CATEGORY,
                    sell_price=price,
                    is_sold=True,
                    sell_date=item_date,
                    notes=f"{SCREENSHOT_NOTE_PREFIX}{name}",
                    shipping_cost=default_shipping_cost(DEFAULT_SHIPPING_METHOD),
                    shipping_method=DEFAULT_SHIPPING_METHOD,
                )
            )
        else:
            records.append(
                Record(
                    id=new_record_id(),
                    name=name,
                    date=item_date,
                    category=DEFAULT_CATEGORY,
                    buy_price=price,
                    notes=f"{SCREENSHOT_NOTE_PREFIX}{name}",
                )
            )
    return records
