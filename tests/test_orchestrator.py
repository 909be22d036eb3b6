"""
Integration tests for the FinanceTracker orchestrator

Every test runs against in-memory storage and an in-memory audit log,
so the full flow (validate, compute, save, audit) is exercised without I/O.
"""

import pytest
from datetime import date, datetime

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AppSettings, Settings
from finance_tracker.models import (
    AuditEventType,
    BudgetCategory,
    RestoreMode,
    TransactionQuery,
    TransactionType,
)
from finance_tracker.orchestrator import FinanceTracker, create_storage, create_tracker
from finance_tracker.services import (
    BackupFormatError,
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    JsonlAuditStorage,
    NotFoundError,
    StorageError,
)
from finance_tracker.validation import BudgetValidationError, TransactionValidationError


NOW = datetime(2024, 6, 20, 12, 0)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def tracker(audit_storage):
    return FinanceTracker(
        storage=InMemoryStorage(),
        audit_logger=AuditLogger(audit_storage),
        app_settings=AppSettings(
            default_tags=["Food", "Salary", "Investment"],
            default_names=["Myself", "John"],
            comparison_months=3,
            dashboard_window_days=30,
        ),
    )


def expense(amount, person="Myself", tag="Food", occurred_at=datetime(2024, 6, 10, 13, 0), **extra):
    data = {
        "amount": amount,
        "type": "expense",
        "name": "Lunch",
        "tag": tag,
        "person": person,
        "occurred_at": occurred_at,
    }
    data.update(extra)
    return data


async def event_types(audit_storage):
    return [e.event_type for e in reversed(await audit_storage.get_recent_events())]


class TestSettingsFlow:
    """Vocabulary seeding and updates."""

    @pytest.mark.asyncio
    async def test_defaults_until_seeded(self, tracker):
        """Test that defaults are offered before anything is stored."""
        assert (await tracker.get_vocabulary()).tags == ["Food", "Salary", "Investment"]
        assert await tracker.storage.get_settings() is None

        seeded = await tracker.ensure_settings()
        assert (await tracker.storage.get_settings()) == seeded

    @pytest.mark.asyncio
    async def test_update_keeps_unspecified_list(self, tracker, audit_storage):
        """Test that updating tags leaves names alone."""
        updated = await tracker.update_settings(tags=["Rent", "Rent", "Food"])
        assert updated.tags == ["Rent", "Food"]
        assert updated.names == ["Myself", "John"]
        assert await event_types(audit_storage) == [AuditEventType.SETTINGS_UPDATED]

    @pytest.mark.asyncio
    async def test_tag_category(self, tracker):
        """Test the tag to category mapping."""
        mapping = await tracker.set_tag_category(" Cinema ", "wants")
        assert mapping == {"Cinema": BudgetCategory.WANTS}


class TestTransactionFlow:
    """Adding, editing and deleting transactions."""

    @pytest.mark.asyncio
    async def test_add_transaction(self, tracker, audit_storage):
        """Test that a valid transaction is stored and audited."""
        transaction = await tracker.add_transaction(expense(500))
        assert await tracker.storage.get_transaction(transaction.id) == transaction
        assert await event_types(audit_storage) == [AuditEventType.TRANSACTION_SAVED]

    @pytest.mark.asyncio
    async def test_invalid_transaction_not_stored(self, tracker, audit_storage):
        """Test that schema errors raise, store nothing and are audited."""
        with pytest.raises(TransactionValidationError):
            await tracker.add_transaction(expense(12.5))
        assert await tracker.list_transactions() == []
        assert await event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    @pytest.mark.asyncio
    async def test_validate_transaction_dry_run(self, tracker):
        """Test that validation warns about unknown tags without saving."""
        result = await tracker.validate_transaction(expense(500, tag="Gadgets"))
        assert result.is_valid
        assert result.issues[0].issue_type == "unknown_tag"
        assert await tracker.list_transactions() == []

    @pytest.mark.asyncio
    async def test_update_transaction(self, tracker):
        """Test that edits keep the id and revalidate."""
        original = await tracker.add_transaction(expense(500))
        updated = await tracker.update_transaction(original.id, {"amount": 650, "name": "Brunch"})
        assert updated.id == original.id
        assert updated.amount == 650
        assert updated.name == "Brunch"
        assert updated.occurred_at == original.occurred_at

        with pytest.raises(TransactionValidationError):
            await tracker.update_transaction(original.id, {"amount": -1})
        assert (await tracker.storage.get_transaction(original.id)).amount == 650

    @pytest.mark.asyncio
    async def test_update_missing_transaction(self, tracker):
        """Test that editing an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await tracker.update_transaction("nope", {"amount": 1})

    @pytest.mark.asyncio
    async def test_delete_transaction(self, tracker, audit_storage):
        """Test that delete reports whether it removed anything."""
        transaction = await tracker.add_transaction(expense(500))
        assert await tracker.delete_transaction(transaction.id) is True
        assert await tracker.delete_transaction(transaction.id) is False
        assert (await event_types(audit_storage)).count(AuditEventType.TRANSACTION_DELETED) == 1

    @pytest.mark.asyncio
    async def test_list_transactions_newest_first(self, tracker):
        """Test list ordering."""
        await tracker.add_transaction(expense(1, occurred_at=datetime(2024, 6, 1)))
        await tracker.add_transaction(expense(2, occurred_at=datetime(2024, 6, 3)))
        await tracker.add_transaction(expense(3, occurred_at=datetime(2024, 6, 2)))
        assert [t.amount for t in await tracker.list_transactions()] == [2, 3, 1]

    @pytest.mark.asyncio
    async def test_search(self, tracker):
        """Test that search goes through the query executor."""
        await tracker.add_transaction(expense(500, name="Pizza"))
        await tracker.add_transaction(expense(200))
        result = await tracker.search_transactions(TransactionQuery(search="pizza"))
        assert result.result_count == 1


class TestGroupExpenseAndSettlement:
    """Split expenses and settlements feeding the people ledger."""

    @pytest.mark.asyncio
    async def test_group_expense_split(self, tracker, audit_storage):
        """Test that a split writes one share per person in one batch."""
        shares = await tracker.add_group_expense(
            "Dinner", 900, "Food", ["Myself", "John", "Jane"], occurred_at=NOW
        )
        assert [s.amount for s in shares] == [300, 300, 300]
        assert len(await tracker.list_transactions()) == 3

        ledger = {b.name: b.net_balance for b in await tracker.people_ledger()}
        assert ledger == {"John": 300, "Jane": 300}
        assert await event_types(audit_storage) == [AuditEventType.GROUP_EXPENSE_SPLIT]

    @pytest.mark.asyncio
    async def test_group_expense_needs_people(self, tracker):
        """Test that an empty person list is a validation error."""
        with pytest.raises(TransactionValidationError) as exc_info:
            await tracker.add_group_expense("Dinner", 900, "Food", ["  "])
        assert exc_info.value.result.issues[-1].field == "persons"
        assert await tracker.list_transactions() == []

    @pytest.mark.asyncio
    async def test_settlement_clears_balance(self, tracker, audit_storage):
        """Test the John scenario: owes 600, pays 600 cash, balance is zero."""
        await tracker.add_transaction(expense(1000, person="John"))
        await tracker.add_transaction({
            "amount": 400, "type": "income", "name": "Part payment",
            "tag": "Settlement", "person": "John",
        })

        produced = await tracker.settle_with("John", cash_amount=600, now=NOW)
        assert len(produced) == 1
        assert produced[0].name == "Settlement with John"

        john = (await tracker.people_ledger())[0]
        assert john.is_settled

        events = await audit_storage.get_recent_events(limit=1)
        assert events[0].event_type == AuditEventType.SETTLEMENT_RECORDED
        assert events[0].details["outstanding_balance"] == 600

    @pytest.mark.asyncio
    async def test_empty_settlement_writes_nothing(self, tracker):
        """Test that all-zero amounts are a no-op."""
        assert await tracker.settle_with("John") == []
        assert await tracker.list_transactions() == []

    @pytest.mark.asyncio
    async def test_failed_batch_is_audited_and_rolled_back(self, audit_storage):
        """Test that a storage failure leaves no partial split behind."""

        class FailingBatchStorage(InMemoryStorage):
            async def put_transactions(self, transactions):
                async with self.atomic():
                    for transaction in transactions[:1]:
                        await self.put_transaction(transaction)
                    raise StorageError("write failed midway")

        tracker = FinanceTracker(
            storage=FailingBatchStorage(),
            audit_logger=AuditLogger(audit_storage),
            app_settings=AppSettings(),
        )
        with pytest.raises(StorageError):
            await tracker.add_group_expense("Trip", 3000, "Travel", ["Myself", "John", "Jane"])

        assert await tracker.list_transactions() == []
        assert await event_types(audit_storage) == [AuditEventType.STORAGE_ERROR]


class TestReadViews:
    """Dashboard and budget overview."""

    @pytest.mark.asyncio
    async def test_dashboard(self, tracker):
        """Test that the dashboard combines every summary."""
        await tracker.add_transaction({
            "amount": 50000, "type": "income", "name": "Salary", "tag": "Salary",
            "occurred_at": datetime(2024, 6, 1, 9, 0),
        })
        await tracker.add_transaction(expense(10000, tag="Investment",
                                              occurred_at=datetime(2024, 6, 2)))
        await tracker.add_transaction(expense(2000, person="John",
                                              occurred_at=datetime(2024, 6, 5)))

        dashboard = await tracker.dashboard(now=NOW)

        assert dashboard.snapshot.balance == 38000
        assert dashboard.snapshot.investments == 10000
        assert dashboard.snapshot.settlement == 2000
        assert dashboard.snapshot.net_worth == 50000
        assert len(dashboard.series) == 3
        assert dashboard.has_enough_data
        assert dashboard.current_month.income == 50000
        assert [m.period for m in dashboard.monthly] == ["2024-04", "2024-05", "2024-06"]
        assert dashboard.breakdown[0].tag == "Investment"
        assert [p.name for p in dashboard.people] == ["John"]

    @pytest.mark.asyncio
    async def test_dashboard_window(self, tracker):
        """Test that the chart window drops old points but not the totals."""
        await tracker.add_transaction(expense(100, occurred_at=datetime(2024, 1, 1)))
        await tracker.add_transaction(expense(100, occurred_at=datetime(2024, 6, 19)))

        windowed = await tracker.dashboard(now=NOW)
        everything = await tracker.dashboard(all_time=True, now=NOW)

        assert len(windowed.series) == 1
        assert not windowed.has_enough_data
        assert len(everything.series) == 2
        assert windowed.snapshot == everything.snapshot

    @pytest.mark.asyncio
    async def test_budget_overview(self, tracker):
        """Test budgets, categories and goals together."""
        await tracker.save_budget({"name": "Food", "amount": 5000, "tags": ["Food"]})
        await tracker.save_investment_goal({
            "name": "Index fund", "targetAmount": 20000, "tags": ["Investment"],
        })
        await tracker.add_transaction(expense(4500, occurred_at=datetime(2024, 6, 10)))
        await tracker.add_transaction(expense(5000, tag="Investment",
                                              occurred_at=datetime(2024, 6, 11)))

        overview = await tracker.budget_overview(date(2024, 6, 20))

        assert overview.reference_date == date(2024, 6, 20)
        ranked = overview.budgets[0]
        assert ranked.progress.spent == 4500
        assert ranked.progress.overspend_probability == 80
        assert overview.over_budget == []
        assert overview.categories[BudgetCategory.NEEDS].budget == 5000
        assert overview.goals[0].percentage == 25

    @pytest.mark.asyncio
    async def test_invalid_budget_rejected(self, tracker):
        """Test that a zero-amount budget cannot be created."""
        with pytest.raises(BudgetValidationError):
            await tracker.save_budget({"name": "Food", "amount": 0})
        assert await tracker.storage.list_budgets() == []

    @pytest.mark.asyncio
    async def test_delete_budget_and_goal(self, tracker):
        """Test that deletes report whether anything was removed."""
        budget = await tracker.save_budget({"name": "Food", "amount": 100})
        goal = await tracker.save_investment_goal({"name": "Car", "target_amount": 100})
        assert await tracker.delete_budget(budget.id) is True
        assert await tracker.delete_budget(budget.id) is False
        assert await tracker.delete_investment_goal(goal.id) is True


class TestBackupFlow:
    """Export, restore and wipe."""

    @pytest.mark.asyncio
    async def test_export_and_restore(self, tracker, audit_storage):
        """Test that exported text restores into a fresh tracker."""
        await tracker.ensure_settings()
        await tracker.add_transaction(expense(500, person="John"))
        await tracker.save_budget({"name": "Food", "amount": 5000})
        text = await tracker.export_backup(now=NOW)

        fresh = FinanceTracker(
            storage=InMemoryStorage(),
            audit_logger=AuditLogger(InMemoryAuditStorage()),
            app_settings=AppSettings(),
        )
        counts = await fresh.restore_backup(text)
        assert counts["transactions"] == 1
        assert counts["budgets"] == 1
        assert [b.name for b in await fresh.people_ledger()] == ["John"]
        assert (await fresh.storage.get_settings()).names == ["Myself", "John"]

    @pytest.mark.asyncio
    async def test_restore_rejects_non_backup(self, tracker):
        """Test that a malformed document changes nothing."""
        await tracker.add_transaction(expense(500))
        with pytest.raises(BackupFormatError):
            await tracker.restore_backup({"transactions": []}, RestoreMode.REPLACE)
        assert len(await tracker.list_transactions()) == 1

    @pytest.mark.asyncio
    async def test_clear_all_data(self, tracker, audit_storage):
        """Test that a wipe removes everything and is audited."""
        await tracker.ensure_settings()
        await tracker.add_transaction(expense(500))
        await tracker.save_budget({"name": "Food", "amount": 5000})

        await tracker.clear_all_data()

        assert await tracker.list_transactions() == []
        assert await tracker.storage.list_budgets() == []
        assert await tracker.storage.get_settings() is None
        assert (await event_types(audit_storage))[-1] == AuditEventType.DATA_CLEARED


class TestFactories:
    """Tests for create_storage and create_tracker."""

    def test_memory_backend(self, monkeypatch):
        """Test that the memory backend pairs with the in-memory audit log."""
        monkeypatch.setenv("FINANCE_TRACKER_STORAGE_BACKEND", "memory")
        settings = Settings()
        assert isinstance(create_storage(settings), InMemoryStorage)

        tracker = create_tracker(settings)
        assert isinstance(tracker.audit_logger.storage, InMemoryAuditStorage)

    def test_json_backend(self, monkeypatch, tmp_path):
        """Test that the JSON backend pairs with the JSONL audit log."""
        monkeypatch.setenv("FINANCE_TRACKER_STORAGE_BACKEND", "json")
        monkeypatch.setenv("FINANCE_TRACKER_STORAGE_DATA_PATH", str(tmp_path / "data.json"))
        monkeypatch.setenv("FINANCE_TRACKER_STORAGE_AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))

        tracker = create_tracker(Settings())
        assert isinstance(tracker.storage, JsonFileStorage)
        assert tracker.storage.path == tmp_path / "data.json"
        assert isinstance(tracker.audit_logger.storage, JsonlAuditStorage)

    @pytest.mark.asyncio
    async def test_json_tracker_end_to_end(self, monkeypatch, tmp_path):
        """Test that data written by one tracker is read by the next."""
        monkeypatch.setenv("FINANCE_TRACKER_STORAGE_DATA_PATH", str(tmp_path / "data.json"))
        monkeypatch.setenv("FINANCE_TRACKER_STORAGE_AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))

        first = create_tracker(Settings())
        saved = await first.add_transaction(expense(750))

        second = create_tracker(Settings())
        assert (await second.storage.get_transaction(saved.id)).type == TransactionType.EXPENSE
        assert (tmp_path / "audit.jsonl").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
