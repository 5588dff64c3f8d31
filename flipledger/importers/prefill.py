"""Pre-fill a new record from fields guessed out of free text."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from flipledger.domain.record import ZERO, Record, new_record_id, normalize_category


@dataclass(frozen=True)
class PrefillFields:
    """Best-guess fields from the free-text extraction service. All optional."""

    name: str | None = None
    category: str | None = None
    buy_price: Decimal | None = None


def record_from_prefill(fields: PrefillFields, today: date | None = None) -> Record:
    """Draft an un-stored inventory record. The caller decides whether to save it."""
    return Record(
        id=new_record_id(),
        name=(fields.name or "").strip(),
        date=today or date.today(),
        category=normalize_category(fields.category),
        buy_price=max(fields.buy_price, ZERO) if fields.buy_price is not None else ZERO,
    )
