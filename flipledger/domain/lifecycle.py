"""Lifecycle classification derived from a record's two price legs."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from enum import Enum

from flipledger.domain.record import ZERO, Record


class LifecycleState(Enum):
    INVENTORY = "INVENTORY"  # buy > 0, sell == 0
    ORPHAN_SALE = "ORPHAN_SALE"  # buy == 0, sell > 0
    CLOSED_LOOP = "CLOSED_LOOP"  # buy > 0, sell > 0
    UNCLASSIFIED = "UNCLASSIFIED"  # both zero

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    LifecycleState.INVENTORY: "inventory",
    LifecycleState.ORPHAN_SALE: "orphan sale",
    LifecycleState.CLOSED_LOOP: "closed loop",
    LifecycleState.UNCLASSIFIED: "uncategorized",
}


def classify_prices(buy_price: Decimal, sell_price: Decimal) -> LifecycleState:
    """Classify a (buy, sell) pair. Negative values count as absent."""
    has_buy = buy_price > ZERO
    has_sell = sell_price > ZERO
    if has_buy and has_sell:
        return LifecycleState.CLOSED_LOOP
    if has_buy:
        return LifecycleState.INVENTORY
    if has_sell:
        return LifecycleState.ORPHAN_SALE
    return LifecycleState.UNCLASSIFIED


def classify(record: Record) -> LifecycleState:
    """Return the lifecycle state of a record."""
    return classify_prices(record.buy_price, record.sell_price)


def filter_by_state(records: Iterable[Record], state: LifecycleState | None) -> list[Record]:
    """Records in the requested state, preserving order. ``None`` returns all."""
    if state is None:
        return list(records)
    return [record for record in records if classify(record) is state]


def count_by_state(records: Iterable[Record]) -> dict[LifecycleState, int]:
    """Number of records per lifecycle state (every state present, possibly 0)."""
    counts = {state: 0 for state in LifecycleState}
    for record in records:
        counts[classify(record)] += 1
    return counts


def parse_state(raw: str | None) -> LifecycleState | None:
    """Parse a state name (case-insensitive); ``None``/``"ALL"`` mean no filter.

    Raises:
        ValueError: Unknown state name.
    """
    if raw is None:
        return None
    value = raw.strip().upper()
    if value in {"", "ALL"}:
        return None
    # Accept the list-view filter names as aliases.
    aliases = {"ORPHAN_SALES": "ORPHAN_SALE", "UNCATEGORIZED": "UNCLASSIFIED"}
    value = aliases.get(value, value)
    try:
        return LifecycleState(value)
    except ValueError as exc:
        raise ValueError(f"Unknown lifecycle state: {raw}") from exc
