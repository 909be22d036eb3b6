"""
Computation Engines

Pure functions over in-memory transactions and budgets. Nothing in
this package touches storage, configuration or logging.
"""

from finance_tracker.engines.ledger import (
    compute_balances,
    find_balance,
    settle,
    split_expense,
    total_settlement,
)
from finance_tracker.engines.summary import (
    TimeSeries,
    category_breakdown,
    current_snapshot,
    financial_totals,
    monthly_comparison,
    period_totals,
    time_series,
)
from finance_tracker.engines.budget import (
    category_summary,
    effective_category,
    goal_progress,
    overspend_probability,
    progress,
    rank_budgets,
    resolve_window,
    spent,
)

__all__ = [
    # Ledger
    "compute_balances",
    "find_balance",
    "settle",
    "split_expense",
    "total_settlement",
    # Summary
    "TimeSeries",
    "category_breakdown",
    "current_snapshot",
    "financial_totals",
    "monthly_comparison",
    "period_totals",
    "time_series",
    # Budget
    "category_summary",
    "effective_category",
    "goal_progress",
    "overspend_probability",
    "progress",
    "rank_budgets",
    "resolve_window",
    "spent",
]
