"""
Audit Logger

DESIGN DECISION: Every write to the tracker is logged.
This provides:
1. A history of how each balance came to be
2. Debugging capability when a write fails
3. A record of restores and data wipes

The audit logger:
- Is async, matching the storage interface
- Gracefully handles failures (a broken audit log never blocks a save)
- Supports correlation IDs to trace the events of one user action
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage import AuditStorageInterface


structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """Send stdlib logging, and with it the structlog JSON lines, to stderr."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format="%(message)s", level=level)
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Writes every audit event to the structured log and, when an audit
    store is attached, appends it there as well.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit `event` locally, then append it to the audit store.

        Returns False only when the append failed; the failure is logged
        and swallowed so that the write being audited still succeeds.
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_saved(
        self,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_saved(
            transaction_id=transaction.id,
            name=transaction.name,
            amount=transaction.amount,
            transaction_type=transaction.type.value,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, correlation_id))

    async def log_settlement_recorded(
        self,
        person: str,
        outstanding_balance: int,
        transactions: list[Transaction],
        correlation_id: UUID,
    ) -> None:
        """Log the batch written for one settlement."""
        event = AuditEventBuilder.settlement_recorded(
            person=person,
            outstanding_balance=outstanding_balance,
            transaction_ids=[t.id for t in transactions],
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_group_expense(
        self,
        name: str,
        transactions: list[Transaction],
        correlation_id: UUID,
    ) -> None:
        """Log the batch written for one split expense."""
        event = AuditEventBuilder.group_expense_split(
            name=name,
            persons=[t.person for t in transactions],
            share=transactions[0].amount if transactions else 0,
            transaction_ids=[t.id for t in transactions],
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """Fresh id shared by every event of one user action (e.g. a settlement and its batch)."""
    return uuid4()
