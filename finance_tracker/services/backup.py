"""
Backup and Restore

Builds the portable backup document from storage and loads one back.

The document layout is shared with earlier versions of the tracker:
    {version, exportedAt, transactions, settings: {tags, names},
     budgets, investmentGoals}

Restore modes:
- replace: wipe transactions, settings, budgets and goals, then load
- merge: keep existing data; transactions whose id already exists are
  skipped, budgets and goals are upserted

Settings are always overwritten by the backup's settings. The whole
restore runs inside storage.atomic(), so it applies completely or not
at all.
"""

import json
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import ValidationError

from finance_tracker.models.backup import BackupData, RestoreMode, TrackerSettings
from finance_tracker.models.transaction import to_naive_utc, utc_now
from finance_tracker.services.storage.interface import TrackerStorageInterface


# Keys a document must carry to be recognised as a backup
REQUIRED_KEYS = ("version", "transactions", "settings")


class BackupFormatError(Exception):
    """The backup document is malformed or not a backup at all."""
    pass


async def create_backup(
    storage: TrackerStorageInterface,
    now: Optional[datetime] = None,
) -> BackupData:
    """Snapshot everything in storage into a BackupData document."""
    settings = await storage.get_settings()
    return BackupData(
        exported_at=to_naive_utc(now) if now is not None else utc_now(),
        transactions=await storage.list_transactions(),
        settings=settings if settings is not None else TrackerSettings(),
        budgets=await storage.list_budgets(),
        investment_goals=await storage.list_investment_goals(),
    )


async def restore_from_backup(
    storage: TrackerStorageInterface,
    data: BackupData,
    mode: RestoreMode = RestoreMode.REPLACE,
) -> dict[str, int]:
    """
    Load a backup into storage.

    Returns:
        Counts of restored records: transactions, skipped_transactions,
        budgets, investment_goals
    """
    mode = RestoreMode(mode)
    restored = {
        "transactions": 0,
        "skipped_transactions": 0,
        "budgets": 0,
        "investment_goals": 0,
    }

    async with storage.atomic():
        if mode == RestoreMode.REPLACE:
            await storage.clear_transactions()
            await storage.clear_settings()
            await storage.clear_budgets()
            await storage.clear_investment_goals()

        await storage.save_settings(data.settings)

        for budget in data.budgets:
            await storage.put_budget(budget)
            restored["budgets"] += 1

        for goal in data.investment_goals:
            await storage.put_investment_goal(goal)
            restored["investment_goals"] += 1

        batch = []
        for transaction in data.transactions:
            if mode == RestoreMode.MERGE and await storage.get_transaction(transaction.id):
                restored["skipped_transactions"] += 1
                continue
            batch.append(transaction)
        await storage.put_transactions(batch)
        restored["transactions"] = len(batch)

    return restored


def dumps_backup(data: BackupData, indent: Optional[int] = 2) -> str:
    """Serialize a backup to the JSON file form (camelCase keys)."""
    return json.dumps(
        data.model_dump(mode="json", by_alias=True),
        indent=indent,
        ensure_ascii=False,
    )


def parse_backup(document: Any) -> BackupData:
    """Validate an already-decoded backup document."""
    if not isinstance(document, dict):
        raise BackupFormatError("Invalid backup file format: expected a JSON object")

    missing = [key for key in REQUIRED_KEYS if document.get(key) is None]
    if not missing and not document["version"]:
        missing.append("version")
    if missing:
        raise BackupFormatError(
            f"Invalid backup file format: missing {', '.join(missing)}"
        )

    try:
        return BackupData.model_validate(document)
    except ValidationError as e:
        raise BackupFormatError(f"Invalid backup file format: {e}") from e


def loads_backup(text: Union[str, bytes]) -> BackupData:
    """Parse the JSON file form of a backup."""
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BackupFormatError(f"Backup is not valid JSON: {e}") from e
    return parse_backup(document)
