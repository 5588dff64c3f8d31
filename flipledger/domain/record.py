"""Data models for resale bookkeeping records."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")

# Coarse manual categories offered by the entry form.
CATEGORIES: tuple[str, ...] = ("Electronics", "Clothing", "Household", "Books", "Toys", "Other")
DEFAULT_CATEGORY = "Electronics"
FALLBACK_CATEGORY = "Other"

# Shipping method code -> default cost paid by the seller.
DEFAULT_SHIPPING_COSTS: dict[str, Decimal] = {
    "STO": Decimal("5.6"),
    "JD": Decimal("15"),
    "SF": Decimal("18"),
    "FREE": Decimal("0"),
}
DEFAULT_SHIPPING_METHOD = "STO"

# Human-readable audit suffix appended to notes on merge.
MERGE_NOTE_SEPARATOR = " | Sold Match: "
UNMERGED_NOTE_PREFIX = "Unmerged from "


def new_record_id() -> str:
    """Return a fresh opaque record identifier."""
    return str(uuid.uuid4())


def default_shipping_cost(method: str | None) -> Decimal:
    """Default seller-paid shipping cost for a method code (unknown/unspecified -> 0)."""
    if not method:
        return ZERO
    return DEFAULT_SHIPPING_COSTS.get(method.strip().upper(), ZERO)


def normalize_category(raw: Any) -> str:
    """Map free-form category input onto the fixed enumeration."""
    if not isinstance(raw, str) or not raw.strip():
        return DEFAULT_CATEGORY
    value = raw.strip()
    for category in CATEGORIES:
        if category.lower() == value.lower():
            return category
    return FALLBACK_CATEGORY


@dataclass(frozen=True)
class MergeProvenance:
    """Structured record of the sale that was absorbed by a merge."""

    sale_id: str
    sale_name: str
    sale_date: date | None = None
    purchase_notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "saleId": self.sale_id,
            "saleName": self.sale_name,
            "saleDate": self.sale_date.isoformat() if self.sale_date else None,
            "purchaseNotes": self.purchase_notes,
        }


@dataclass(frozen=True)
class Record:
    """A single buy and/or sell transaction.

    Lifecycle state is never stored; see ``flipledger.domain.lifecycle``.
    """

    id: str
    name: str
    date: date
    category: str = DEFAULT_CATEGORY
    buy_price: Decimal = ZERO
    sell_price: Decimal = ZERO
    is_sold: bool = False
    sell_date: date | None = None
    notes: str = ""
    shipping_cost: Decimal | None = None
    shipping_method: str | None = None
    smart_tag: str | None = None
    provenance: MergeProvenance | None = None

    @property
    def effective_sale_date(self) -> date:
        """Sale date when recorded, acquisition date otherwise."""
        return self.sell_date or self.date

    def to_dict(self) -> dict[str, Any]:
        """Serialize with a stable field order using the snapshot field names."""
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "smartTag": self.smart_tag,
            "buyPrice": money_to_json(self.buy_price),
            "sellPrice": money_to_json(self.sell_price),
            "isSold": self.is_sold,
            "date": self.date.isoformat(),
            "sellDate": self.sell_date.isoformat() if self.sell_date else None,
            "notes": self.notes,
            "shippingCost": money_to_json(self.shipping_cost) if self.shipping_cost is not None else None,
            "shippingMethod": self.shipping_method,
        }
        if self.provenance is not None:
            payload["mergeProvenance"] = self.provenance.to_dict()
        return {key: value for key, value in payload.items() if value is not None}


def money_to_json(value: Decimal) -> int | float:
    """Render a Decimal as a JSON number (ints stay ints)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def coerce_money(raw: Any) -> Decimal | None:
    """Parse an untrusted amount; ``None`` when it is not a finite number.

    Booleans are rejected even though ``bool`` is an ``int`` subclass.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int | float):
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        text = raw.strip().replace(",", "")
        if not text:
            return None
        try:
            value = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not value.is_finite():
        return None
    return value


def clamp_money(raw: Any) -> Decimal:
    """Coerce to a non-negative amount; invalid input becomes 0."""
    value = coerce_money(raw)
    if value is None or value < ZERO:
        return ZERO
    return value


def parse_iso_date(raw: Any) -> date | None:
    """Parse ``YYYY-MM-DD`` (a longer ISO timestamp is truncated to its date)."""
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
