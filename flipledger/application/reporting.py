"""Statistics, chart data and the narrative report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from flipledger.application.collaborators import ReportWriter
from flipledger.domain.finance import PortfolioStats, portfolio_stats
from flipledger.domain.record import Record
from flipledger.domain.reports import build_report_payload, chart_data
from flipledger.runtime import AIServiceError, get_logger

logger = get_logger(__name__)

ReportStatus = Literal["generated", "empty", "service_unavailable"]


def run_stats(records: tuple[Record, ...]) -> PortfolioStats:
    """Portfolio statistics, recomputed from the snapshot every time."""
    return portfolio_stats(records)


def run_chart_data(records: tuple[Record, ...]) -> dict[str, Any]:
    return chart_data(records)


@dataclass(frozen=True)
class ReportResult:
    status: ReportStatus
    text: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


async def run_narrative_report(records: tuple[Record, ...], writer: ReportWriter) -> ReportResult:
    """Ask the report service for an analysis of the current portfolio. Never mutates state."""
    if not records:
        return ReportResult(status="empty", error="No records to analyze")

    payload = build_report_payload(records, portfolio_stats(records))
    try:
        text = await writer.write_report(payload)
    except AIServiceError as exc:
        logger.warning("Narrative report failed: %s", exc)
        return ReportResult(status="service_unavailable", payload=payload, error=str(exc))
    return ReportResult(status="generated", text=text, payload=payload)
