"""Transaction query package."""

from finance_tracker.queries.executor import (
    TransactionQueryExecutor,
    filter_transactions,
    matches,
)

__all__ = ["TransactionQueryExecutor", "filter_transactions", "matches"]
