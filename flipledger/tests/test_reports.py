"""Tests for chart and report derivations."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from flipledger.domain.finance import portfolio_stats
from flipledger.domain.record import Record
from flipledger.domain.reports import (
    best_and_worst_trades,
    build_report_payload,
    chart_data,
    closed_loop_kpis,
    cumulative_timeline,
    inventory_by_category,
    monthly_summaries,
    profit_by_category,
)


def _record(
    record_id: str,
    name: str,
    day: date,
    category: str,
    buy: str = "0",
    sell: str = "0",
    shipping: str | None = None,
) -> Record:
    sell_price = Decimal(sell)
    return Record(
        id=record_id,
        name=name,
        date=day,
        category=category,
        buy_price=Decimal(buy),
        sell_price=sell_price,
        is_sold=sell_price > 0,
        sell_date=day if sell_price > 0 else None,
        shipping_cost=Decimal(shipping) if shipping is not None else None,
    )


@pytest.fixture
def records() -> list[Record]:
    return [
        _record("d", "Monitor", date(2024, 4, 10), "Electronics", buy="200", sell="150", shipping="0"),
        _record("a", "Camera", date(2024, 3, 1), "Electronics", buy="100", sell="150", shipping="0"),
        _record("b", "Jacket", date(2024, 3, 15), "Clothing", buy="50"),
        _record("c", "Pencils", date(2024, 4, 2), "Books", buy="3"),
        _record("e", "Robot", date(2024, 4, 10), "Toys", sell="80", shipping="5.6"),
    ]


def test_cumulative_timeline_one_point_per_date(records: list[Record]) -> None:
    timeline = cumulative_timeline(records)

    assert [p.date for p in timeline] == [date(2024, 3, 1), date(2024, 3, 15), date(2024, 4, 2), date(2024, 4, 10)]
    assert timeline[0].profit == Decimal("49.1")
    last = timeline[-1]
    assert last.invested == Decimal("353")
    assert last.revenue == Decimal("380")
    assert last.profit == Decimal("-1.8")


def test_monthly_summaries(records: list[Record]) -> None:
    months = monthly_summaries(records)

    assert [m.month for m in months] == ["2024-03", "2024-04"]
    assert (months[0].bought, months[0].sold, months[0].profit) == (Decimal("150"), Decimal("150"), Decimal("49.1"))
    assert (months[1].bought, months[1].sold, months[1].profit) == (Decimal("203"), Decimal("230"), Decimal("-50.9"))


def test_distributions(records: list[Record]) -> None:
    profits = profit_by_category(records)
    stuck = inventory_by_category(records)

    assert [(c.category, c.amount) for c in profits] == [("Electronics", Decimal("49.1"))]
    # Items at or below the floor value are ignored.
    assert [(c.category, c.amount) for c in stuck] == [("Clothing", Decimal("50"))]


def test_closed_loop_kpis(records: list[Record]) -> None:
    kpis = closed_loop_kpis(records)

    assert kpis.count == 2
    assert kpis.total_profit == Decimal("-1.8")
    assert kpis.total_cost == Decimal("300")
    assert kpis.average_profit == Decimal("-0.9")
    assert kpis.roi == Decimal("-0.6")


def test_best_and_worst(records: list[Record]) -> None:
    best, worst = best_and_worst_trades(records)
    assert best is not None and best.record.id == "a"
    assert worst is not None and worst.record.id == "d"

    assert best_and_worst_trades(records[2:]) == (None, None)


def test_report_payload_uses_closed_loop_cost(records: list[Record]) -> None:
    payload = build_report_payload(records, portfolio_stats(records))

    assert payload["closedLoopStats"] == {"profit": -1.8, "cost": 300.0, "roi": -0.6, "count": 2}
    assert payload["bestTrade"] == {"name": "Camera", "profit": 49.1}
    assert payload["worstTrade"] == {"name": "Monitor", "profit": -50.9}
    assert payload["inventoryCount"] == 1
    assert payload["inventorySample"] == ["Jacket"]


def test_chart_data_is_json_friendly(records: list[Record]) -> None:
    charts = chart_data(records)

    assert charts["timeline"][0] == {"date": "2024-03-01", "invested": 100.0, "revenue": 150.0, "profit": 49.1}
    assert charts["monthly"][1]["month"] == "2024-04"
    assert charts["profitDistribution"] == [{"name": "Electronics", "value": 49.1}]
    assert charts["inventoryDistribution"] == [{"name": "Clothing", "value": 50.0}]
    assert charts["kpi"]["count"] == 2


def test_chart_data_empty() -> None:
    charts = chart_data([])
    assert charts["timeline"] == []
    assert charts["kpi"] == {"count": 0, "totalProfit": 0.0, "averageProfit": 0.0, "roi": 0.0}
