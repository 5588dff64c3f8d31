"""Core domain models and pure transitions for flipledger.

This package provides:
- Record, MergeProvenance: the transaction model
- LifecycleState, classify: derived lifecycle state
- portfolio_stats, net_profit, platform_fee: financial formulas
- merge_records, split_record, delete_record: reconciliation transitions

Usage:
    from flipledger.domain import Record, classify, merge_records
"""

from flipledger.domain.finance import PortfolioStats, net_profit, platform_fee, portfolio_stats, profit_margin
from flipledger.domain.lifecycle import LifecycleState, classify, count_by_state, filter_by_state
from flipledger.domain.reconcile import (
    CONFIRM_DELETE_PERMANENTLY,
    CONFIRM_SPLIT,
    delete_record,
    merge_records,
    plan_deletion,
    split_record,
)
from flipledger.domain.record import MergeProvenance, Record, new_record_id

__all__ = [
    "Record",
    "MergeProvenance",
    "new_record_id",
    "LifecycleState",
    "classify",
    "count_by_state",
    "filter_by_state",
    "PortfolioStats",
    "net_profit",
    "platform_fee",
    "portfolio_stats",
    "profit_margin",
    "CONFIRM_DELETE_PERMANENTLY",
    "CONFIRM_SPLIT",
    "delete_record",
    "merge_records",
    "plan_deletion",
    "split_record",
]
