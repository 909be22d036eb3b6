"""
Transaction Query Execution

DESIGN DECISION: Query execution is DETERMINISTIC.
Filters are applied to the transactions actually in storage and the
result says plainly when nothing matched. Nothing is estimated.

All active filters must match (AND); inside the tag and person
filters any listed value matches (OR).
"""

from datetime import date
from typing import Iterable, Optional

from finance_tracker.engines.dates import end_of_day, start_of_day
from finance_tracker.models.query import QueryResult, TransactionQuery
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage import TrackerStorageInterface


def matches(query: TransactionQuery, transaction: Transaction) -> bool:
    """True when `transaction` passes every active filter of `query`."""
    if query.search and query.search.lower() not in transaction.name.lower():
        return False
    if query.type is not None and transaction.type != query.type:
        return False
    if query.tags and transaction.tag not in query.tags:
        return False
    if query.persons and transaction.person not in query.persons:
        return False
    if query.date_from and transaction.occurred_at < start_of_day(query.date_from):
        return False
    if query.date_to and transaction.occurred_at > end_of_day(query.date_to):
        return False
    return True


def filter_transactions(
    query: TransactionQuery,
    transactions: Iterable[Transaction],
) -> list[Transaction]:
    """Matching transactions, newest first, cut to `query.limit`."""
    found = [t for t in transactions if matches(query, t)]
    found.sort(key=lambda t: t.occurred_at, reverse=True)
    if query.limit is not None:
        found = found[:query.limit]
    return found


class TransactionQueryExecutor:
    """
    Executes transaction queries against tracker storage.

    GUARANTEES:
    - Only returns real data from storage
    - Clear "no data found" if nothing matches
    """

    def __init__(self, storage: TrackerStorageInterface):
        self._storage = storage

    async def execute(self, query: TransactionQuery) -> QueryResult:
        """Run the query; storage failures come back as an unsuccessful result."""
        try:
            transactions = await self._storage.list_transactions()
        except Exception as e:
            return QueryResult(
                query_id=query.query_id,
                success=False,
                error_message=str(e),
                result_count=0,
                query_description=f"Query failed: {str(e)}",
            )

        found = filter_transactions(query, transactions)
        return QueryResult(
            query_id=query.query_id,
            success=True,
            result_count=len(found),
            transactions=found,
            query_description=self.describe(query),
        )

    def describe(self, query: TransactionQuery) -> str:
        """Human-readable summary of the active filters."""
        desc_parts = ["Transactions"]
        if query.search:
            desc_parts.append(f"matching '{query.search}'")
        if query.type is not None:
            desc_parts.append(f"type: {query.type.value}")
        if query.tags:
            desc_parts.append(f"tags: {', '.join(query.tags)}")
        if query.persons:
            desc_parts.append(f"people: {', '.join(query.persons)}")
        if query.date_from or query.date_to:
            desc_parts.append(self._date_range_str(query.date_from, query.date_to))
        return " | ".join(desc_parts)

    def _date_range_str(
        self,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> str:
        """Format date range for description."""
        if date_from and date_to:
            if date_from == date_to:
                return f"on {date_from.strftime('%d %b %Y')}"
            elif date_from.month == date_to.month and date_from.year == date_to.year:
                return f"from {date_from.strftime('%d')} to {date_to.strftime('%d %b %Y')}"
            else:
                return f"from {date_from.strftime('%d %b %Y')} to {date_to.strftime('%d %b %Y')}"
        elif date_from:
            return f"from {date_from.strftime('%d %b %Y')}"
        elif date_to:
            return f"until {date_to.strftime('%d %b %Y')}"
        return ""
