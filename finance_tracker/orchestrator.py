"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Recording money (single transactions, split group expenses, settlements)
2. Reading it back (people ledger, dashboard, budgets, search)
3. Budgets, investment goals and settings
4. Backup, restore and wiping data

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is stored without passing schema validation
- Multi-record writes go through one atomic batch
- Every write is audited, and storage failures are audited before
  they propagate

The engines stay pure: the orchestrator reads from storage, hands the
engines plain lists and writes back what they return.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence, Union
from uuid import UUID

from finance_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from finance_tracker.config import AppSettings, Settings, get_settings
from finance_tracker.engines import (
    category_breakdown,
    category_summary,
    compute_balances,
    current_snapshot,
    financial_totals,
    find_balance,
    goal_progress,
    monthly_comparison,
    period_totals,
    rank_budgets,
    settle,
    split_expense,
    time_series,
    total_settlement,
)
from finance_tracker.engines.dates import month_end, month_start
from finance_tracker.models import (
    AuditEventBuilder,
    BackupData,
    Budget,
    BudgetCategory,
    BudgetOverview,
    Dashboard,
    GoalProgress,
    InvestmentGoal,
    PersonBalance,
    QueryResult,
    RestoreMode,
    TrackerSettings,
    Transaction,
    TransactionQuery,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from finance_tracker.models.transaction import to_naive_utc
from finance_tracker.queries import TransactionQueryExecutor
from finance_tracker.services.backup import (
    create_backup,
    dumps_backup,
    loads_backup,
    parse_backup,
    restore_from_backup,
)
from finance_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    JsonlAuditStorage,
    NotFoundError,
    StorageError,
    TrackerStorageInterface,
)
from finance_tracker.validation import (
    BudgetValidator,
    TransactionValidationError,
    TransactionValidator,
    ValidationFailedError,
)


BackupSource = Union[BackupData, Mapping[str, Any], str, bytes]


class FinanceTracker:
    """
    The tracker as a service.

    Flow for every write:
    1. Validate → schema errors raise, vocabulary issues are warnings
    2. Compute → engines build the records to store
    3. Save → one storage call or one atomic batch
    4. Audit → the write (or the storage failure) is logged
    """

    def __init__(
        self,
        storage: TrackerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        transaction_validator: Optional[TransactionValidator] = None,
        budget_validator: Optional[BudgetValidator] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._app_settings = app_settings or get_settings().app
        self._audit_logger = audit_logger or AuditLogger()
        self._transaction_validator = (
            transaction_validator or TransactionValidator(self._app_settings)
        )
        self._budget_validator = budget_validator or BudgetValidator()
        self._query_executor = TransactionQueryExecutor(storage)

    @property
    def storage(self) -> TrackerStorageInterface:
        return self._storage

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    async def _guarded(self, operation: str, correlation_id: UUID, call):
        """Await a storage call; audit any StorageError before re-raising it."""
        try:
            return await call
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

    async def _report_invalid(
        self,
        error: ValidationFailedError,
        correlation_id: UUID,
    ) -> None:
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in error.result.issues
        ]
        await self._audit_logger.log_validation_failed(
            entity_type=error.result.entity_type,
            issues=issues,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def default_settings(self) -> TrackerSettings:
        return TrackerSettings(
            tags=list(self._app_settings.default_tags),
            names=list(self._app_settings.default_names),
        )

    async def get_vocabulary(self) -> TrackerSettings:
        """Stored tags and names, or the defaults when none are stored."""
        stored = await self._storage.get_settings()
        return stored if stored is not None else self.default_settings()

    async def ensure_settings(self) -> TrackerSettings:
        """Seed the default tags and names on first run."""
        stored = await self._storage.get_settings()
        if stored is not None:
            return stored
        defaults = self.default_settings()
        correlation_id = create_correlation_id()
        await self._guarded(
            "ensure_settings", correlation_id, self._storage.save_settings(defaults)
        )
        await self._audit_logger.log(AuditEventBuilder.settings_updated(
            tag_count=len(defaults.tags),
            name_count=len(defaults.names),
            correlation_id=correlation_id,
        ))
        return defaults

    async def update_settings(
        self,
        tags: Optional[Sequence[str]] = None,
        names: Optional[Sequence[str]] = None,
    ) -> TrackerSettings:
        """Replace the tag and/or name lists; a None argument keeps the current list."""
        current = await self.get_vocabulary()
        updated = TrackerSettings(
            tags=list(tags) if tags is not None else current.tags,
            names=list(names) if names is not None else current.names,
        )
        correlation_id = create_correlation_id()
        await self._guarded(
            "update_settings", correlation_id, self._storage.save_settings(updated)
        )
        await self._audit_logger.log(AuditEventBuilder.settings_updated(
            tag_count=len(updated.tags),
            name_count=len(updated.names),
            correlation_id=correlation_id,
        ))
        return updated

    async def set_tag_category(self, tag: str, category: BudgetCategory) -> dict[str, BudgetCategory]:
        """Map a tag to a budget category for the category summary."""
        mapping = await self._storage.get_tag_category_map()
        mapping[tag.strip()] = BudgetCategory(category)
        correlation_id = create_correlation_id()
        await self._guarded(
            "set_tag_category", correlation_id, self._storage.save_tag_category_map(mapping)
        )
        return mapping

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def list_transactions(self) -> list[Transaction]:
        """Every transaction, newest first."""
        transactions = await self._storage.list_transactions()
        return sorted(transactions, key=lambda t: t.occurred_at, reverse=True)

    async def validate_transaction(self, data: Mapping[str, Any]) -> ValidationResult:
        """Dry-run validation, for showing warnings before saving."""
        return self._transaction_validator.validate(data, await self.get_vocabulary())

    async def add_transaction(
        self,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate and store a new transaction.

        Raises:
            TransactionValidationError: If the input fails schema validation
            StorageError: If the write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        vocabulary = await self.get_vocabulary()

        try:
            transaction, _ = self._transaction_validator.build(data, vocabulary)
        except ValidationFailedError as e:
            await self._report_invalid(e, correlation_id)
            raise

        await self._guarded(
            "add_transaction", correlation_id, self._storage.put_transaction(transaction)
        )
        await self._audit_logger.log_transaction_saved(transaction, correlation_id)
        return transaction

    async def update_transaction(
        self,
        transaction_id: str,
        changes: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Apply `changes` to an existing transaction. The id never changes.

        Raises:
            NotFoundError: If no transaction has this id
            TransactionValidationError: If the edited transaction is invalid
        """
        correlation_id = correlation_id or create_correlation_id()
        existing = await self._storage.get_transaction(transaction_id)
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        # camelCase keys in `changes` take precedence over the snake_case dump
        merged = existing.model_dump()
        merged.update(changes)
        merged["id"] = existing.id

        try:
            transaction, _ = self._transaction_validator.build(
                merged, await self.get_vocabulary()
            )
        except ValidationFailedError as e:
            await self._report_invalid(e, correlation_id)
            raise

        await self._guarded(
            "update_transaction", correlation_id, self._storage.put_transaction(transaction)
        )
        await self._audit_logger.log_transaction_saved(transaction, correlation_id)
        return transaction

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()
        deleted = await self._guarded(
            "delete_transaction",
            correlation_id,
            self._storage.delete_transaction(transaction_id),
        )
        if deleted:
            await self._audit_logger.log_transaction_deleted(transaction_id, correlation_id)
        return deleted

    async def add_group_expense(
        self,
        name: str,
        amount: int,
        tag: str,
        persons: Sequence[str],
        occurred_at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Split one shared expense evenly and store every share at once.

        Include "Myself" in `persons` to record the user's own share.

        Raises:
            TransactionValidationError: If the shared expense is invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        # Validate the expense as a whole before splitting it
        draft = {"name": name, "amount": amount, "tag": tag, "type": "expense"}
        result = self._transaction_validator.validate(draft, await self.get_vocabulary())
        if not any(p and p.strip() for p in persons):
            result.issues.append(ValidationIssue(
                field="persons",
                issue_type="missing",
                message="Pick at least one person to split with",
                severity="error",
            ))
            result.schema_valid = False

        if not result.is_valid:
            error = TransactionValidationError(result)
            await self._report_invalid(error, correlation_id)
            raise error

        transactions = split_expense(name, amount, tag, persons, occurred_at=occurred_at)

        await self._guarded(
            "add_group_expense", correlation_id, self._storage.put_transactions(transactions)
        )
        await self._audit_logger.log_group_expense(name, transactions, correlation_id)
        return transactions

    async def settle_with(
        self,
        person: str,
        cash_amount: int = 0,
        spent_for_me_amount: int = 0,
        other_amount: int = 0,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Record a settlement with `person` against their current balance.

        The outstanding balance is read from the ledger at call time.
        Nothing is written when all three amounts are zero.

        Raises:
            ValueError: For negative amounts or settling with "Myself"
        """
        correlation_id = correlation_id or create_correlation_id()
        transactions = await self._storage.list_transactions()
        balance = find_balance(compute_balances(transactions), person)
        outstanding = balance.net_balance if balance is not None else 0

        produced = settle(
            person_name=person,
            outstanding_balance=outstanding,
            cash_amount=cash_amount,
            spent_for_me_amount=spent_for_me_amount,
            other_amount=other_amount,
            description=description or f"Settlement with {person}",
            now=now,
        )
        if not produced:
            return []

        await self._guarded(
            "settle_with", correlation_id, self._storage.put_transactions(produced)
        )
        await self._audit_logger.log_settlement_recorded(
            person, outstanding, produced, correlation_id
        )
        return produced

    async def search_transactions(self, query: TransactionQuery) -> QueryResult:
        return await self._query_executor.execute(query)

    # =========================================================================
    # READ VIEWS
    # =========================================================================

    async def people_ledger(self) -> list[PersonBalance]:
        return compute_balances(await self._storage.list_transactions())

    async def dashboard(
        self,
        window_days: Optional[int] = None,
        all_time: bool = False,
        now: Optional[datetime] = None,
    ) -> Dashboard:
        """
        Dashboard figures as of `now`.

        window_days defaults to the configured dashboard window;
        all_time=True charts the whole history instead.
        """
        now = to_naive_utc(now) if now is not None else utc_now()
        if all_time:
            window = None
        else:
            window = window_days if window_days is not None else self._app_settings.dashboard_window_days

        transactions = await self._storage.list_transactions()
        people = compute_balances(transactions)
        series = time_series(transactions, window, now)

        return Dashboard(
            generated_at=now,
            snapshot=current_snapshot(transactions, settlement_override=total_settlement(people)),
            totals=financial_totals(transactions),
            series=series.to_list(),
            has_enough_data=series.is_sufficient,
            current_month=period_totals(
                transactions,
                month_start(now.year, now.month),
                month_end(now.year, now.month),
            ),
            monthly=monthly_comparison(
                transactions, self._app_settings.comparison_months, now
            ),
            breakdown=category_breakdown(transactions),
            people=people,
        )

    async def budget_overview(self, reference_date: Optional[date] = None) -> BudgetOverview:
        """Every budget ranked for display, the category summary and goal progress."""
        reference = reference_date or utc_now()
        transactions = await self._storage.list_transactions()
        budgets = await self._storage.list_budgets()
        tag_map = await self._storage.get_tag_category_map()

        return BudgetOverview(
            reference_date=reference.date() if isinstance(reference, datetime) else reference,
            budgets=rank_budgets(budgets, transactions, reference),
            categories=category_summary(budgets, transactions, tag_map, reference),
            goals=await self.goal_overview(transactions),
        )

    async def goal_overview(
        self,
        transactions: Optional[list[Transaction]] = None,
    ) -> list[GoalProgress]:
        if transactions is None:
            transactions = await self._storage.list_transactions()
        goals = await self._storage.list_investment_goals()
        return [goal_progress(goal, transactions) for goal in goals]

    # =========================================================================
    # BUDGETS AND GOALS
    # =========================================================================

    async def save_budget(
        self,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Create or replace a budget (an existing id is overwritten).

        Raises:
            BudgetValidationError: If the input fails schema validation
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            budget, _ = self._budget_validator.build(data, await self.get_vocabulary())
        except ValidationFailedError as e:
            await self._report_invalid(e, correlation_id)
            raise

        await self._guarded("save_budget", correlation_id, self._storage.put_budget(budget))
        await self._audit_logger.log(AuditEventBuilder.budget_saved(
            budget_id=budget.id,
            name=budget.name,
            amount=budget.amount,
            correlation_id=correlation_id,
        ))
        return budget

    async def delete_budget(self, budget_id: str) -> bool:
        correlation_id = create_correlation_id()
        deleted = await self._guarded(
            "delete_budget", correlation_id, self._storage.delete_budget(budget_id)
        )
        if deleted:
            await self._audit_logger.log(
                AuditEventBuilder.budget_deleted(budget_id, correlation_id)
            )
        return deleted

    async def save_investment_goal(
        self,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> InvestmentGoal:
        correlation_id = correlation_id or create_correlation_id()
        try:
            goal, _ = self._budget_validator.build_goal(data)
        except ValidationFailedError as e:
            await self._report_invalid(e, correlation_id)
            raise

        await self._guarded(
            "save_investment_goal", correlation_id, self._storage.put_investment_goal(goal)
        )
        await self._audit_logger.log(AuditEventBuilder.goal_saved(
            goal_id=goal.id,
            name=goal.name,
            target_amount=goal.target_amount,
            correlation_id=correlation_id,
        ))
        return goal

    async def delete_investment_goal(self, goal_id: str) -> bool:
        correlation_id = create_correlation_id()
        deleted = await self._guarded(
            "delete_investment_goal",
            correlation_id,
            self._storage.delete_investment_goal(goal_id),
        )
        if deleted:
            await self._audit_logger.log(AuditEventBuilder.goal_deleted(goal_id, correlation_id))
        return deleted

    # =========================================================================
    # BACKUP
    # =========================================================================

    async def create_backup(self, now: Optional[datetime] = None) -> BackupData:
        backup = await create_backup(self._storage, now)
        await self._audit_logger.log(AuditEventBuilder.backup_created(
            transaction_count=len(backup.transactions),
            budget_count=len(backup.budgets),
            correlation_id=create_correlation_id(),
        ))
        return backup

    async def export_backup(self, now: Optional[datetime] = None) -> str:
        """The backup as JSON text, ready to write to a file."""
        return dumps_backup(await self.create_backup(now))

    async def restore_backup(
        self,
        source: BackupSource,
        mode: RestoreMode = RestoreMode.REPLACE,
    ) -> dict[str, int]:
        """
        Restore from a BackupData, a decoded document or JSON text.

        Raises:
            BackupFormatError: If the source is not a valid backup
            StorageError: If the restore fails (nothing is applied)
        """
        if isinstance(source, BackupData):
            data = source
        elif isinstance(source, (str, bytes)):
            data = loads_backup(source)
        else:
            data = parse_backup(source)

        mode = RestoreMode(mode)
        correlation_id = create_correlation_id()
        restored = await self._guarded(
            "restore_backup",
            correlation_id,
            restore_from_backup(self._storage, data, mode),
        )
        await self._audit_logger.log(
            AuditEventBuilder.backup_restored(mode.value, restored, correlation_id)
        )
        return restored

    async def clear_all_data(self) -> None:
        """Delete every transaction, budget, goal and the settings."""
        correlation_id = create_correlation_id()

        async def wipe() -> None:
            async with self._storage.atomic():
                await self._storage.clear_transactions()
                await self._storage.clear_budgets()
                await self._storage.clear_investment_goals()
                await self._storage.clear_settings()

        await self._guarded("clear_all_data", correlation_id, wipe())
        await self._audit_logger.log(AuditEventBuilder.data_cleared(correlation_id))


def create_storage(settings: Optional[Settings] = None) -> TrackerStorageInterface:
    """Build the configured tracker storage backend."""
    storage_settings = (settings or get_settings()).storage
    if storage_settings.backend == "memory":
        return InMemoryStorage()
    return JsonFileStorage(
        storage_settings.data_path,
        read_retry_attempts=storage_settings.read_retry_attempts,
    )


def create_tracker(
    settings: Optional[Settings] = None,
    storage: Optional[TrackerStorageInterface] = None,
) -> FinanceTracker:
    """
    Factory function to create a fully wired tracker.

    Args:
        settings: Configuration; defaults to get_settings()
        storage: Use this storage instead of the configured backend

    Returns:
        A FinanceTracker with audit logging to the matching audit store
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage
    configure_logging(app_settings.debug_mode)
    storage = storage or create_storage(settings)

    if isinstance(storage, JsonFileStorage):
        audit_storage = JsonlAuditStorage(storage_settings.audit_log_path)
    else:
        audit_storage = InMemoryAuditStorage()

    return FinanceTracker(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        app_settings=app_settings,
    )
