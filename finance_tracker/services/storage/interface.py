"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the engines free of any storage concern
2. Use in-memory storage for testing
3. Swap the JSON file for a real database later

The interface is intentionally simple - we're not building a full ORM.
Filtering and aggregation happen in the engines, not here.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.backup import TrackerSettings
from finance_tracker.models.budget import Budget, BudgetCategory, InvestmentGoal
from finance_tracker.models.transaction import Transaction


class TrackerStorageInterface(ABC):
    """
    Abstract interface for tracker data storage.

    Any storage implementation must implement these methods. Writes
    are never retried; a failed write leaves the stored state as it
    was before the call and raises StorageError.
    """

    # Transactions

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        Return every stored transaction.

        Returns:
            Transactions in insertion order
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def put_transaction(self, transaction: Transaction) -> None:
        """
        Insert or replace a transaction (keyed by id).

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def put_transactions(self, transactions: list[Transaction]) -> None:
        """
        Insert or replace several transactions as one batch.

        Either every transaction is stored or none is.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    async def clear_transactions(self) -> None:
        pass

    # Budgets

    @abstractmethod
    async def list_budgets(self, month: Optional[str] = None) -> list[Budget]:
        """
        List budgets.

        Args:
            month: "YYYY-MM"; when given, only monthly budgets whose
                month equals it are returned

        Returns:
            Matching budgets
        """
        pass

    @abstractmethod
    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        pass

    @abstractmethod
    async def put_budget(self, budget: Budget) -> None:
        """Insert or replace a budget (keyed by id)."""
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        pass

    @abstractmethod
    async def clear_budgets(self) -> None:
        pass

    # Investment goals

    @abstractmethod
    async def list_investment_goals(self) -> list[InvestmentGoal]:
        pass

    @abstractmethod
    async def put_investment_goal(self, goal: InvestmentGoal) -> None:
        """Insert or replace an investment goal (keyed by id)."""
        pass

    @abstractmethod
    async def delete_investment_goal(self, goal_id: str) -> bool:
        pass

    @abstractmethod
    async def clear_investment_goals(self) -> None:
        pass

    # Settings

    @abstractmethod
    async def get_settings(self) -> Optional[TrackerSettings]:
        """
        Return the stored tag/name vocabularies.

        Returns:
            The settings, or None if none have been saved yet
        """
        pass

    @abstractmethod
    async def save_settings(self, settings: TrackerSettings) -> None:
        pass

    @abstractmethod
    async def clear_settings(self) -> None:
        pass

    @abstractmethod
    async def get_tag_category_map(self) -> dict[str, BudgetCategory]:
        pass

    @abstractmethod
    async def save_tag_category_map(self, mapping: dict[str, BudgetCategory]) -> None:
        pass

    # Batching

    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """
        Group several writes into one all-or-nothing unit.

        Usage:
            async with storage.atomic():
                await storage.clear_transactions()
                await storage.put_transactions(batch)

        If the block raises, stored state is rolled back to what it was
        on entry and the exception propagates.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one settlement).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not open or read the storage backend."""
    pass
