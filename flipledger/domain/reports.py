"""Chart and report derivations built on the shared financial formulas."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from flipledger.domain.finance import PortfolioStats, net_profit, roi_percent
from flipledger.domain.lifecycle import LifecycleState, classify
from flipledger.domain.record import ZERO, Record

# Cheap consumables are left out of inventory analysis.
INVENTORY_VALUE_FLOOR = Decimal("5")
REPORT_INVENTORY_SAMPLE_SIZE = 10


@dataclass(frozen=True)
class TimelinePoint:
    """Cumulative totals as of the end of one acquisition date."""

    date: date
    invested: Decimal
    revenue: Decimal
    profit: Decimal


@dataclass(frozen=True)
class MonthlySummary:
    month: str  # YYYY-MM
    bought: Decimal
    sold: Decimal
    profit: Decimal


@dataclass(frozen=True)
class CategoryAmount:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class ClosedLoopKpis:
    count: int
    total_profit: Decimal
    total_cost: Decimal
    average_profit: Decimal
    roi: Decimal


@dataclass(frozen=True)
class TradeHighlight:
    record: Record
    profit: Decimal


def _by_date(records: Sequence[Record]) -> list[Record]:
    return sorted(records, key=lambda r: r.date)


def _profit_or_zero(record: Record) -> Decimal:
    profit = net_profit(record)
    return profit if profit is not None else ZERO


def cumulative_timeline(records: Sequence[Record]) -> list[TimelinePoint]:
    """Running invested/revenue/profit totals, one point per acquisition date."""
    invested = ZERO
    revenue = ZERO
    profit = ZERO
    points: dict[date, TimelinePoint] = {}
    for record in _by_date(records):
        invested += record.buy_price
        if record.is_sold:
            revenue += record.sell_price
        profit += _profit_or_zero(record)
        points[record.date] = TimelinePoint(date=record.date, invested=invested, revenue=revenue, profit=profit)
    return list(points.values())


def monthly_summaries(records: Sequence[Record]) -> list[MonthlySummary]:
    """Bought/sold/profit totals grouped by acquisition month, oldest first."""
    buckets: dict[str, list[Decimal]] = {}
    for record in records:
        month = record.date.strftime("%Y-%m")
        bucket = buckets.setdefault(month, [ZERO, ZERO, ZERO])
        bucket[0] += record.buy_price
        if record.is_sold:
            bucket[1] += record.sell_price
        bucket[2] += _profit_or_zero(record)
    return [
        MonthlySummary(month=month, bought=values[0], sold=values[1], profit=values[2])
        for month, values in sorted(buckets.items())
    ]


def _sum_by_category(pairs: list[tuple[str, Decimal]]) -> list[CategoryAmount]:
    totals: dict[str, Decimal] = {}
    for category, amount in pairs:
        totals[category] = totals.get(category, ZERO) + amount
    return [CategoryAmount(category=c, amount=a) for c, a in totals.items()]


def profit_by_category(records: Sequence[Record]) -> list[CategoryAmount]:
    """Where the money comes from: positive closed-loop profits per category."""
    pairs = []
    for record in _by_date(records):
        profit = net_profit(record)
        if profit is not None and profit > ZERO:
            pairs.append((record.category, profit))
    return _sum_by_category(pairs)


def inventory_by_category(records: Sequence[Record]) -> list[CategoryAmount]:
    """Where the money is stuck: unsold inventory value per category."""
    pairs = [
        (record.category, record.buy_price)
        for record in _by_date(records)
        if classify(record) is LifecycleState.INVENTORY and record.buy_price > INVENTORY_VALUE_FLOOR
    ]
    return _sum_by_category(pairs)


def closed_loop_kpis(records: Sequence[Record]) -> ClosedLoopKpis:
    count = 0
    total_profit = ZERO
    total_cost = ZERO
    for record in records:
        profit = net_profit(record)
        if profit is None:
            continue
        count += 1
        total_profit += profit
        total_cost += record.buy_price
    average = total_profit / count if count else ZERO
    return ClosedLoopKpis(
        count=count,
        total_profit=total_profit,
        total_cost=total_cost,
        average_profit=average,
        roi=roi_percent(total_profit, total_cost),
    )


def best_and_worst_trades(records: Sequence[Record]) -> tuple[TradeHighlight | None, TradeHighlight | None]:
    """Highest and lowest net-profit closed-loop trades."""
    highlights = []
    for record in records:
        profit = net_profit(record)
        if profit is not None:
            highlights.append(TradeHighlight(record=record, profit=profit))
    if not highlights:
        return None, None
    highlights.sort(key=lambda h: h.profit, reverse=True)
    return highlights[0], highlights[-1]


def build_report_payload(records: Sequence[Record], stats: PortfolioStats) -> dict[str, Any]:
    """Summary handed to the narrative report service.

    The cost figure is the closed-loop cost basis, matching the ROI shown in
    the list and chart views.
    """
    best, worst = best_and_worst_trades(records)
    inventory = [
        record
        for record in records
        if classify(record) is LifecycleState.INVENTORY and record.buy_price > INVENTORY_VALUE_FLOOR
    ]
    return {
        "closedLoopStats": {
            "profit": float(stats.closed_loop_profit),
            "cost": float(stats.closed_loop_cost),
            "roi": float(stats.closed_loop_roi),
            "count": stats.closed_loop_count,
        },
        "bestTrade": {"name": best.record.name, "profit": float(best.profit)} if best else None,
        "worstTrade": {"name": worst.record.name, "profit": float(worst.profit)} if worst else None,
        "inventoryCount": len(inventory),
        "inventorySample": [record.name for record in inventory[:REPORT_INVENTORY_SAMPLE_SIZE]],
    }


def chart_data(records: Sequence[Record]) -> dict[str, Any]:
    """All chart series as JSON-friendly structures."""
    kpis = closed_loop_kpis(records)
    return {
        "timeline": [
            {
                "date": p.date.isoformat(),
                "invested": float(p.invested),
                "revenue": float(p.revenue),
                "profit": float(p.profit),
            }
            for p in cumulative_timeline(records)
        ],
        "monthly": [
            {"month": m.month, "buy": float(m.bought), "sell": float(m.sold), "profit": float(m.profit)}
            for m in monthly_summaries(records)
        ],
        "profitDistribution": [{"name": c.category, "value": float(c.amount)} for c in profit_by_category(records)],
        "inventoryDistribution": [
            {"name": c.category, "value": float(c.amount)} for c in inventory_by_category(records)
        ],
        "kpi": {
            "count": kpis.count,
            "totalProfit": float(kpis.total_profit),
            "averageProfit": float(kpis.average_profit),
            "roi": float(kpis.roi),
        },
    }
