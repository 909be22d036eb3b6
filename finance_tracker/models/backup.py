"""
Settings and Backup Models

The backup document is an interop format shared with earlier versions
of the tracker, so its field names stay camelCase on the wire:

    {version, exportedAt, transactions, settings: {tags, names},
     budgets, investmentGoals}
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from finance_tracker.models.budget import Budget, InvestmentGoal
from finance_tracker.models.transaction import Transaction, UtcDatetime, utc_now


BACKUP_VERSION = 2


class TrackerSettings(BaseModel):
    """Tag and person-name vocabularies offered when entering transactions."""
    model_config = ConfigDict(frozen=True)

    tags: list[str] = Field(default_factory=list)
    names: list[str] = Field(default_factory=list)

    @field_validator("tags", "names")
    @classmethod
    def dedupe(cls, v: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for item in v:
            item = item.strip()
            if item:
                seen.setdefault(item, None)
        return list(seen)

    @property
    def is_empty(self) -> bool:
        return not self.tags and not self.names


class RestoreMode(str, Enum):
    """
    replace: wipe everything, then load the backup
    merge: keep existing data, skip transactions whose id already exists
    """
    REPLACE = "replace"
    MERGE = "merge"


class BackupData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: int = BACKUP_VERSION
    exported_at: UtcDatetime = Field(default_factory=utc_now, validate_default=True)
    transactions: list[Transaction] = Field(default_factory=list)
    settings: TrackerSettings = Field(default_factory=TrackerSettings)
    budgets: list[Budget] = Field(default_factory=list)
    investment_goals: list[InvestmentGoal] = Field(default_factory=list)
