"""
Tests for backup creation and restore
"""

import json
import pytest
from datetime import datetime

from finance_tracker.models import (
    BackupData,
    Budget,
    InvestmentGoal,
    RestoreMode,
    TrackerSettings,
    Transaction,
    TransactionType,
)
from finance_tracker.services import (
    BackupFormatError,
    InMemoryStorage,
    StorageError,
    create_backup,
    dumps_backup,
    loads_backup,
    parse_backup,
    restore_from_backup,
)


EXPORTED_AT = datetime(2024, 6, 1, 8, 30)


def make_tx(tx_id, amount=100, person="Myself"):
    return Transaction(
        id=tx_id,
        amount=amount,
        type=TransactionType.EXPENSE,
        name=f"tx {tx_id}",
        tag="Food",
        person=person,
        occurred_at=datetime(2024, 5, 20, 19, 45),
    )


async def seeded_storage():
    storage = InMemoryStorage()
    await storage.put_transactions([make_tx("t1", 100), make_tx("t2", 250, person="John")])
    await storage.put_budget(Budget(
        id="b1", name="Food", amount=5000, tags=["Food"], created_at=EXPORTED_AT,
    ))
    await storage.put_investment_goal(InvestmentGoal(
        id="g1", name="House", target_amount=10000, created_at=EXPORTED_AT,
    ))
    await storage.save_settings(TrackerSettings(tags=["Food"], names=["Myself", "John"]))
    return storage


class TestCreateBackup:
    """Tests for create_backup and the file form."""

    @pytest.mark.asyncio
    async def test_backup_contains_everything(self):
        """Test that every record kind is captured."""
        backup = await create_backup(await seeded_storage(), now=EXPORTED_AT)
        assert backup.exported_at == EXPORTED_AT
        assert [t.id for t in backup.transactions] == ["t1", "t2"]
        assert [b.id for b in backup.budgets] == ["b1"]
        assert [g.id for g in backup.investment_goals] == ["g1"]
        assert backup.settings.names == ["Myself", "John"]

    @pytest.mark.asyncio
    async def test_missing_settings_become_empty(self):
        """Test that a backup always carries a settings object."""
        backup = await create_backup(InMemoryStorage(), now=EXPORTED_AT)
        assert backup.settings == TrackerSettings()

    @pytest.mark.asyncio
    async def test_file_form(self):
        """Test the serialized layout."""
        backup = await create_backup(await seeded_storage(), now=EXPORTED_AT)
        document = json.loads(dumps_backup(backup))

        assert document["version"] == 2
        assert document["exportedAt"] == "2024-06-01T08:30:00.000Z"
        assert document["transactions"][1] == {
            "id": "t2",
            "occurredAt": "2024-05-20T19:45:00.000Z",
            "amount": 250,
            "type": "expense",
            "name": "tx t2",
            "tag": "Food",
            "person": "John",
        }
        assert document["budgets"][0]["type"] == "monthly"
        assert document["investmentGoals"][0]["targetAmount"] == 10000


class TestRestore:
    """Tests for restore_from_backup."""

    @pytest.mark.asyncio
    async def test_replace_round_trip(self):
        """Test that a backup restored into empty storage reproduces the source."""
        source = await seeded_storage()
        text = dumps_backup(await create_backup(source, now=EXPORTED_AT))

        target = InMemoryStorage()
        await target.put_transaction(make_tx("stale"))
        counts = await restore_from_backup(target, loads_backup(text), RestoreMode.REPLACE)

        assert counts == {
            "transactions": 2,
            "skipped_transactions": 0,
            "budgets": 1,
            "investment_goals": 1,
        }
        assert await target.list_transactions() == await source.list_transactions()
        assert await target.list_budgets() == await source.list_budgets()
        assert await target.get_settings() == await source.get_settings()

    @pytest.mark.asyncio
    async def test_merge_skips_existing_ids(self):
        """Test that merge keeps local data and skips known transactions."""
        backup = await create_backup(await seeded_storage(), now=EXPORTED_AT)

        target = InMemoryStorage()
        await target.put_transactions([make_tx("t1", 999), make_tx("local")])
        counts = await restore_from_backup(target, backup, RestoreMode.MERGE)

        assert counts["transactions"] == 1
        assert counts["skipped_transactions"] == 1
        stored = {t.id: t.amount for t in await target.list_transactions()}
        assert stored == {"t1": 999, "local": 100, "t2": 250}

    @pytest.mark.asyncio
    async def test_settings_always_overwritten(self):
        """Test that even a merge takes the backup's settings."""
        target = InMemoryStorage()
        await target.save_settings(TrackerSettings(tags=["Local"]))
        await restore_from_backup(
            target, BackupData(settings=TrackerSettings(tags=["Backup"])), RestoreMode.MERGE
        )
        assert (await target.get_settings()).tags == ["Backup"]

    @pytest.mark.asyncio
    async def test_failed_restore_changes_nothing(self):
        """Test that a restore failing partway leaves storage untouched."""

        class FailingStorage(InMemoryStorage):
            async def put_transactions(self, transactions):
                raise StorageError("write failed")

        target = FailingStorage()
        await target.put_transaction(make_tx("keep"))
        backup = await create_backup(await seeded_storage(), now=EXPORTED_AT)

        with pytest.raises(StorageError):
            await restore_from_backup(target, backup, RestoreMode.REPLACE)

        assert [t.id for t in await target.list_transactions()] == ["keep"]
        assert await target.get_settings() is None
        assert await target.list_budgets() == []


class TestParseBackup:
    """Tests for parse_backup and loads_backup."""

    def test_accepts_minimal_document(self):
        """Test that budgets and goals are optional."""
        backup = parse_backup({
            "version": 1,
            "exportedAt": "2023-12-31T23:59:59.000Z",
            "transactions": [],
            "settings": {"tags": [], "names": []},
        })
        assert backup.version == 1
        assert backup.budgets == []

    @pytest.mark.parametrize("document", [
        [],
        "backup",
        {"transactions": [], "settings": {}},
        {"version": 2, "settings": {}},
        {"version": 2, "transactions": []},
        {"version": 0, "transactions": [], "settings": {}},
        {"version": 2, "transactions": None, "settings": {}},
    ])
    def test_rejects_malformed_documents(self, document):
        """Test that non-backups are refused before anything is restored."""
        with pytest.raises(BackupFormatError):
            parse_backup(document)

    def test_rejects_invalid_records(self):
        """Test that record-level errors surface as BackupFormatError."""
        with pytest.raises(BackupFormatError):
            parse_backup({
                "version": 2,
                "transactions": [{"id": "t1", "amount": "lots", "type": "expense",
                                  "name": "x", "tag": "y"}],
                "settings": {},
            })

    def test_rejects_invalid_json(self):
        """Test that text that is not JSON is refused."""
        with pytest.raises(BackupFormatError):
            loads_backup("{oops")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
