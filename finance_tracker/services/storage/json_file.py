"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON document on disk is enough for one
person's finances:
1. The file is human-readable and easy to back up by hand
2. No database setup required
3. The document layout mirrors the backup format

TRADEOFFS:
- The whole document is rewritten on every commit (fine for personal use)
- Not safe for several processes writing at once (single-user by scope)

Writes go to a temporary file which then replaces the real one, so a
crash mid-write never leaves a truncated document behind. The initial
read is retried with tenacity; writes are never retried.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.backup import BACKUP_VERSION, TrackerSettings
from finance_tracker.models.budget import Budget, BudgetCategory, InvestmentGoal
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    StorageConnectionError,
    StorageError,
)
from finance_tracker.services.storage.memory import InMemoryStorage, TrackerState


def _atomic_write_text(path: Path, text: str) -> None:
    """Write `text` to `path` through a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class JsonFileStorage(InMemoryStorage):
    """
    Tracker storage backed by one JSON document.

    The document is loaded on first access and rewritten after every
    committed write. A failed write restores the in-memory state and
    raises StorageError.
    """

    def __init__(self, path: Path | str, read_retry_attempts: int = 3):
        super().__init__()
        self._path = Path(path)
        self._read_retry_attempts = read_retry_attempts
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _read_text(self) -> Optional[str]:
        """Read the document, retrying transient OS errors. None if it does not exist."""
        if not self._path.exists():
            return None
        retrying = Retrying(
            stop=stop_after_attempt(self._read_retry_attempts),
            wait=wait_exponential(multiplier=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    return self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageConnectionError(f"Could not read {self._path}: {e}") from e
        return None

    def _ensure_ready(self) -> None:
        if self._loaded:
            return
        text = self._read_text()
        if text is not None and text.strip():
            self._state = self._decode(text)
        self._loaded = True

    def _decode(self, text: str) -> TrackerState:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Data file {self._path} is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise StorageError(f"Data file {self._path} must hold a JSON object")

        state = TrackerState()
        try:
            for raw in document.get("transactions", []):
                transaction = Transaction.model_validate(raw)
                state.transactions[transaction.id] = transaction
            for raw in document.get("budgets", []):
                budget = Budget.model_validate(raw)
                state.budgets[budget.id] = budget
            for raw in document.get("investmentGoals", []):
                goal = InvestmentGoal.model_validate(raw)
                state.investment_goals[goal.id] = goal
            if document.get("settings") is not None:
                state.settings = TrackerSettings.model_validate(document["settings"])
            state.tag_category_map = {
                tag: BudgetCategory(category)
                for tag, category in document.get("tagCategoryMap", {}).items()
            }
        except (ValidationError, ValueError) as e:
            raise StorageError(f"Data file {self._path} holds invalid records: {e}") from e
        return state

    def _encode(self) -> str:
        state = self._state
        document: dict[str, Any] = {
            "version": BACKUP_VERSION,
            "transactions": [
                t.model_dump(mode="json", by_alias=True) for t in state.transactions.values()
            ],
            "budgets": [
                b.model_dump(mode="json", by_alias=True) for b in state.budgets.values()
            ],
            "investmentGoals": [
                g.model_dump(mode="json", by_alias=True)
                for g in state.investment_goals.values()
            ],
            "settings": (
                state.settings.model_dump(mode="json") if state.settings is not None else None
            ),
            "tagCategoryMap": {
                tag: category.value for tag, category in state.tag_category_map.items()
            },
        }
        return json.dumps(document, indent=2, ensure_ascii=False)

    async def _commit(self) -> None:
        try:
            _atomic_write_text(self._path, self._encode())
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}") from e


class JsonlAuditStorage(AuditStorageInterface):
    """
    Audit log stored as JSON Lines, one event per line.

    Appends only; lines that fail to parse are skipped when reading.
    """

    def __init__(self, path: Path | str):
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.model_dump_json() + "\n")
            return True
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}") from e

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate_json(line))
                except ValidationError:
                    continue  # Skip malformed lines
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._read_events() if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._read_events()))[:limit]
