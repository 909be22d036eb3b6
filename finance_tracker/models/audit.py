"""
Audit Models for Finance Tracker

Each write to the tracker (a saved or deleted transaction, a settlement
batch, a restore, a wipe) produces one AuditEvent. Events are only ever
appended; the audit store has no update or delete path.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"
    GROUP_EXPENSE_SPLIT = "group_expense_split"
    SETTLEMENT_RECORDED = "settlement_recorded"

    # Budgets and goals
    BUDGET_SAVED = "budget_saved"
    BUDGET_DELETED = "budget_deleted"
    GOAL_SAVED = "goal_saved"
    GOAL_DELETED = "goal_deleted"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Settings
    SETTINGS_UPDATED = "settings_updated"

    # Backup
    BACKUP_CREATED = "backup_created"
    BACKUP_RESTORED = "backup_restored"
    DATA_CLEARED = "data_cleared"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One entry in the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'backup')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking the events of one user action
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Factory methods for the events the orchestrator emits.

    Usage:
        event = AuditEventBuilder.transaction_saved(transaction_id, amount, correlation_id)
        event = AuditEventBuilder.settlement_recorded(person, ids, correlation_id)
    """

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        name: str,
        amount: int,
        transaction_type: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {name} ({transaction_type} {amount})",
            details={
                "amount": amount,
                "type": transaction_type,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def group_expense_split(
        name: str,
        persons: list[str],
        share: int,
        transaction_ids: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_EXPENSE_SPLIT,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Group expense split: {name} across {len(persons)} people",
            details={
                "persons": persons,
                "share": share,
                "transaction_ids": transaction_ids,
            },
            is_user_action=True,
        )

    @staticmethod
    def settlement_recorded(
        person: str,
        outstanding_balance: int,
        transaction_ids: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            entity_type="person",
            entity_id=person,
            correlation_id=correlation_id,
            description=f"Settlement recorded with {person}: {len(transaction_ids)} transactions",
            details={
                "outstanding_balance": outstanding_balance,
                "transaction_ids": transaction_ids,
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_saved(
        budget_id: str,
        name: str,
        amount: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SAVED,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget saved: {name} ({amount})",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def budget_deleted(
        budget_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description="Budget deleted",
            is_user_action=True,
        )

    @staticmethod
    def goal_saved(
        goal_id: str,
        name: str,
        target_amount: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_SAVED,
            entity_type="investment_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Investment goal saved: {name} ({target_amount})",
            details={"target_amount": target_amount},
            is_user_action=True,
        )

    @staticmethod
    def goal_deleted(
        goal_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_DELETED,
            entity_type="investment_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description="Investment goal deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def settings_updated(
        tag_count: int,
        name_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="settings",
            correlation_id=correlation_id,
            description=f"Settings updated: {tag_count} tags, {name_count} names",
            details={"tag_count": tag_count, "name_count": name_count},
            is_user_action=True,
        )

    @staticmethod
    def backup_created(
        transaction_count: int,
        budget_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_CREATED,
            entity_type="backup",
            correlation_id=correlation_id,
            description=f"Backup created with {transaction_count} transactions",
            details={
                "transaction_count": transaction_count,
                "budget_count": budget_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_restored(
        mode: str,
        restored: dict[str, int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_RESTORED,
            entity_type="backup",
            correlation_id=correlation_id,
            description=f"Backup restored ({mode})",
            details={"mode": mode, **restored},
            is_user_action=True,
        )

    @staticmethod
    def data_cleared(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="All transactions, budgets, goals and settings cleared",
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
