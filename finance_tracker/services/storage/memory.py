"""
In-Memory Storage Implementation

Keeps everything in dictionaries. Used directly by tests and as the
state holder behind JsonFileStorage, which only adds loading and
persisting the same state.

Every write runs inside atomic(): nested blocks join the outermost one,
and only the outermost block commits. If the block or the commit
fails, the state captured on entry is put back.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.backup import TrackerSettings
from finance_tracker.models.budget import Budget, BudgetCategory, InvestmentGoal
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    TrackerStorageInterface,
)


class TrackerState:
    """The full set of stored records. Dicts are keyed by id and keep insertion order."""

    def __init__(self) -> None:
        self.transactions: dict[str, Transaction] = {}
        self.budgets: dict[str, Budget] = {}
        self.investment_goals: dict[str, InvestmentGoal] = {}
        self.settings: Optional[TrackerSettings] = None
        self.tag_category_map: dict[str, BudgetCategory] = {}

    def copy(self) -> "TrackerState":
        clone = TrackerState()
        clone.transactions = dict(self.transactions)
        clone.budgets = dict(self.budgets)
        clone.investment_goals = dict(self.investment_goals)
        clone.settings = self.settings
        clone.tag_category_map = dict(self.tag_category_map)
        return clone


class InMemoryStorage(TrackerStorageInterface):
    """
    Ephemeral storage; contents are lost when the object goes away.

    Reads hand out deep copies of budgets, goals and settings so that
    editing a returned list (e.g. `budget.tags`) cannot reach stored state.
    """

    def __init__(self, state: Optional[TrackerState] = None):
        self._state = state or TrackerState()
        self._depth = 0

    def _ensure_ready(self) -> None:
        """Hook for subclasses that load state lazily."""

    async def _commit(self) -> None:
        """Hook for subclasses that persist state after a write."""

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        self._ensure_ready()
        if self._depth > 0:
            # Joined the enclosing block; it owns rollback and commit
            yield
            return

        snapshot = self._state.copy()
        self._depth += 1
        try:
            yield
            await self._commit()
        except BaseException:
            self._state = snapshot
            raise
        finally:
            self._depth -= 1

    # Transactions

    async def list_transactions(self) -> list[Transaction]:
        self._ensure_ready()
        return list(self._state.transactions.values())

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        self._ensure_ready()
        return self._state.transactions.get(transaction_id)

    async def put_transaction(self, transaction: Transaction) -> None:
        async with self.atomic():
            self._state.transactions[transaction.id] = transaction

    async def put_transactions(self, transactions: list[Transaction]) -> None:
        async with self.atomic():
            for transaction in transactions:
                self._state.transactions[transaction.id] = transaction

    async def delete_transaction(self, transaction_id: str) -> bool:
        self._ensure_ready()
        if transaction_id not in self._state.transactions:
            return False
        async with self.atomic():
            del self._state.transactions[transaction_id]
        return True

    async def clear_transactions(self) -> None:
        async with self.atomic():
            self._state.transactions = {}

    # Budgets

    async def list_budgets(self, month: Optional[str] = None) -> list[Budget]:
        self._ensure_ready()
        budgets = [b.model_copy(deep=True) for b in self._state.budgets.values()]
        if month is None:
            return budgets
        return [
            b for b in budgets
            if b.is_monthly and b.window.month == month
        ]

    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        self._ensure_ready()
        budget = self._state.budgets.get(budget_id)
        return budget.model_copy(deep=True) if budget is not None else None

    async def put_budget(self, budget: Budget) -> None:
        async with self.atomic():
            self._state.budgets[budget.id] = budget.model_copy(deep=True)

    async def delete_budget(self, budget_id: str) -> bool:
        self._ensure_ready()
        if budget_id not in self._state.budgets:
            return False
        async with self.atomic():
            del self._state.budgets[budget_id]
        return True

    async def clear_budgets(self) -> None:
        async with self.atomic():
            self._state.budgets = {}

    # Investment goals

    async def list_investment_goals(self) -> list[InvestmentGoal]:
        self._ensure_ready()
        return [g.model_copy(deep=True) for g in self._state.investment_goals.values()]

    async def put_investment_goal(self, goal: InvestmentGoal) -> None:
        async with self.atomic():
            self._state.investment_goals[goal.id] = goal.model_copy(deep=True)

    async def delete_investment_goal(self, goal_id: str) -> bool:
        self._ensure_ready()
        if goal_id not in self._state.investment_goals:
            return False
        async with self.atomic():
            del self._state.investment_goals[goal_id]
        return True

    async def clear_investment_goals(self) -> None:
        async with self.atomic():
            self._state.investment_goals = {}

    # Settings

    async def get_settings(self) -> Optional[TrackerSettings]:
        self._ensure_ready()
        settings = self._state.settings
        return settings.model_copy(deep=True) if settings is not None else None

    async def save_settings(self, settings: TrackerSettings) -> None:
        async with self.atomic():
            self._state.settings = settings.model_copy(deep=True)

    async def clear_settings(self) -> None:
        async with self.atomic():
            self._state.settings = None

    async def get_tag_category_map(self) -> dict[str, BudgetCategory]:
        self._ensure_ready()
        return dict(self._state.tag_category_map)

    async def save_tag_category_map(self, mapping: dict[str, BudgetCategory]) -> None:
        async with self.atomic():
            self._state.tag_category_map = {
                tag: BudgetCategory(category) for tag, category in mapping.items()
            }


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit log kept in a list. Append-only."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
