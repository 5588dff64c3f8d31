"""Financial formulas shared by list, chart and report views.

Everything here is a pure function of the records passed in. Aggregates are
recomputed from the current snapshot on every call and never cached.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from flipledger.domain.lifecycle import LifecycleState, classify
from flipledger.domain.record import ZERO, Record

# Flat platform fee on sale proceeds plus shipping.
PLATFORM_FEE_RATE = Decimal("0.006")
HUNDRED = Decimal("100")


def platform_fee(sell_price: Decimal, shipping_cost: Decimal | None = None) -> Decimal:
    """Fee charged on ``(sell_price + shipping_cost)``."""
    return (sell_price + (shipping_cost or ZERO)) * PLATFORM_FEE_RATE


def net_profit(record: Record) -> Decimal | None:
    """Net profit of a closed-loop record, ``None`` for any other state.

    ``sell - buy - shipping - platform_fee(sell, shipping)``
    """
    if classify(record) is not LifecycleState.CLOSED_LOOP:
        return None
    shipping = record.shipping_cost or ZERO
    return record.sell_price - record.buy_price - shipping - platform_fee(record.sell_price, shipping)


def profit_margin(record: Record) -> Decimal | None:
    """Net profit as a percentage of the buy price, ``None`` unless closed loop."""
    profit = net_profit(record)
    if profit is None:
        return None
    return profit / record.buy_price * HUNDRED


@dataclass(frozen=True)
class PortfolioStats:
    """Aggregate figures for the whole collection."""

    total_invested: Decimal
    total_revenue: Decimal
    closed_loop_profit: Decimal
    closed_loop_cost: Decimal
    closed_loop_roi: Decimal
    item_count: int
    sold_count: int
    closed_loop_count: int
    inventory_count: int
    orphan_sale_count: int

    def to_dict(self) -> dict[str, float | int]:
        return {
            "totalInvested": float(self.total_invested),
            "totalRevenue": float(self.total_revenue),
            "closedLoopProfit": float(self.closed_loop_profit),
            "closedLoopCost": float(self.closed_loop_cost),
            "closedLoopRoi": float(self.closed_loop_roi),
            "itemCount": self.item_count,
            "soldCount": self.sold_count,
            "closedLoopCount": self.closed_loop_count,
            "inventoryCount": self.inventory_count,
            "orphanSaleCount": self.orphan_sale_count,
        }


def roi_percent(profit: Decimal, cost: Decimal) -> Decimal:
    """``profit / cost * 100``; 0 when there is no cost basis."""
    if cost <= ZERO:
        return ZERO
    return profit / cost * HUNDRED


def portfolio_stats(records: Iterable[Record]) -> PortfolioStats:
    """Aggregate statistics in a single pass.

    ROI uses the closed-loop cost basis only: unsold inventory does not dilute
    the return of completed trades.
    """
    total_invested = ZERO
    total_revenue = ZERO
    closed_loop_profit = ZERO
    closed_loop_cost = ZERO
    item_count = 0
    sold_count = 0
    closed_loop_count = 0
    inventory_count = 0
    orphan_sale_count = 0

    for record in records:
        item_count += 1
        total_invested += record.buy_price
        if record.is_sold:
            total_revenue += record.sell_price
            sold_count += 1

        state = classify(record)
        if state is LifecycleState.CLOSED_LOOP:
            profit = net_profit(record)
            assert profit is not None
            closed_loop_profit += profit
            closed_loop_cost += record.buy_price
            closed_loop_count += 1
        elif state is LifecycleState.INVENTORY:
            inventory_count += 1
        elif state is LifecycleState.ORPHAN_SALE:
            orphan_sale_count += 1

    return PortfolioStats(
        total_invested=total_invested,
        total_revenue=total_revenue,
        closed_loop_profit=closed_loop_profit,
        closed_loop_cost=closed_loop_cost,
        closed_loop_roi=roi_percent(closed_loop_profit, closed_loop_cost),
        item_count=item_count,
        sold_count=sold_count,
        closed_loop_count=closed_loop_count,
        inventory_count=inventory_count,
        orphan_sale_count=orphan_sale_count,
    )
