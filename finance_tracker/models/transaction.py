"""
Transaction Model

A transaction is the single source of truth for every number the
tracker shows. Everything else (balances, summaries, budget progress)
is derived from the transaction list on demand.

DESIGN DECISION: Amounts are non-negative integers in the smallest
currency unit. Direction is carried by `type`, never by the sign.
Floats and numeric strings are rejected rather than coerced.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel


# Person value for transactions with no counterparty
SELF_PERSON = "Myself"

# Tags the engines give special meaning to
SETTLEMENT_TAG = "Settlement"
INVESTMENT_TAG = "Investment"


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid4())


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize aware datetimes to naive UTC; naive values pass through."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_stored_utc(value: datetime) -> datetime:
    """Naive UTC truncated to whole milliseconds, the precision the JSON form keeps."""
    value = to_naive_utc(value)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def to_iso_z(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix, as JavaScript writes it."""
    return to_naive_utc(value).isoformat(timespec="milliseconds") + "Z"


# Accepts naive or aware input, stores naive UTC at millisecond precision,
# writes ISO-8601 Z in JSON
UtcDatetime = Annotated[
    datetime,
    AfterValidator(to_stored_utc),
    PlainSerializer(to_iso_z, when_used="json"),
]

Amount = Annotated[int, Field(strict=True, ge=0)]


class TransactionType(str, Enum):
    """Direction of a money movement."""
    INCOME = "income"
    EXPENSE = "expense"


class Transaction(BaseModel):
    """
    Immutable record of a single money movement.

    `person` is either SELF_PERSON (pure personal income/expense) or a
    counterparty name, in which case the transaction takes part in the
    people ledger.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique identifier",
    )
    occurred_at: UtcDatetime = Field(
        default_factory=utc_now,
        validate_default=True,
        description="When the money moved (naive UTC)",
    )
    amount: Amount = Field(
        ...,
        description="Amount in the smallest currency unit",
    )
    type: TransactionType
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Free-text description",
    )
    tag: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    person: str = Field(
        default=SELF_PERSON,
        min_length=1,
        max_length=100,
        description="Counterparty, or SELF_PERSON",
    )

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def has_counterparty(self) -> bool:
        """True when the transaction participates in the people ledger."""
        return self.person != SELF_PERSON
