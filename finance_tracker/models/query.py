"""
Transaction Query Models

Filters offered on the transaction list: free-text search, type,
tags, persons and an inclusive date range.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from finance_tracker.models.transaction import Transaction, TransactionType, utc_now


class TransactionQuery(BaseModel):
    query_id: UUID = Field(default_factory=uuid4)

    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the transaction name",
    )
    type: Optional[TransactionType] = None
    tags: list[str] = Field(default_factory=list)
    persons: list[str] = Field(default_factory=list)
    date_from: Optional[date] = None
    date_to: Optional[date] = Field(
        default=None,
        description="Inclusive through the end of this day",
    )

    limit: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def validate_range(self) -> "TransactionQuery":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        return self


class QueryResult(BaseModel):
    query_id: UUID
    executed_at: datetime = Field(default_factory=utc_now)

    success: bool
    error_message: Optional[str] = None

    result_count: int = Field(ge=0)
    transactions: list[Transaction] = Field(default_factory=list)
    query_description: str

    @property
    def data_found(self) -> bool:
        return self.result_count > 0
