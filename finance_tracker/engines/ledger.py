"""
Ledger Engine

Derives per-person balances from the transaction list and produces the
transactions that represent a settlement or a split group expense.

DESIGN DECISION: These are pure functions. They never read or write
storage; callers persist the returned transactions as one batch.

Sign convention: a positive net balance means the counterparty owes
the user. An expense recorded against a person is money the user laid
out for them; an income recorded against a person is money received
from them.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from finance_tracker.models.reports import PersonBalance
from finance_tracker.models.transaction import (
    SELF_PERSON,
    SETTLEMENT_TAG,
    Transaction,
    TransactionType,
    new_id,
    to_naive_utc,
    utc_now,
)


IdFactory = Callable[[], str]


def compute_balances(transactions: Iterable[Transaction]) -> list[PersonBalance]:
    """
    Group counterparty transactions by person and total them.

    Returns balances ordered by descending net balance (largest amount
    owed to the user first). Each person's transactions are newest first.
    """
    grouped: dict[str, list[Transaction]] = {}
    for t in transactions:
        if not t.has_counterparty:
            continue
        grouped.setdefault(t.person, []).append(t)

    balances = []
    for person, person_transactions in grouped.items():
        total_owed = sum(t.amount for t in person_transactions if t.is_expense)
        total_owing = sum(t.amount for t in person_transactions if t.is_income)
        balances.append(PersonBalance(
            name=person,
            total_owed=total_owed,
            total_owing=total_owing,
            transactions=sorted(
                person_transactions,
                key=lambda t: t.occurred_at,
                reverse=True,
            ),
        ))

    balances.sort(key=lambda b: b.net_balance, reverse=True)
    return balances


def total_settlement(balances: Iterable[PersonBalance]) -> int:
    """Net amount owed to the user across every counterparty."""
    return sum(b.net_balance for b in balances)


def find_balance(balances: Iterable[PersonBalance], person: str) -> Optional[PersonBalance]:
    for balance in balances:
        if balance.name == person:
            return balance
    return None


def _check_amount(label: str, amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{label} must be an integer, got {amount!r}")
    if amount < 0:
        raise ValueError(f"{label} cannot be negative, got {amount}")


def settle(
    person_name: str,
    outstanding_balance: int,
    cash_amount: int,
    spent_for_me_amount: int,
    other_amount: int,
    description: str,
    now: Optional[datetime] = None,
    id_factory: IdFactory = new_id,
) -> list[Transaction]:
    """
    Build the transactions recording a settlement with `person_name`.

    cash_amount: the person paid the user in cash (income against them).
    spent_for_me_amount: the person paid for something on the user's
        behalf. Recorded twice: an income against the person clears the
        ledger, and an expense against SELF_PERSON records the real
        personal spend without touching the person's ledger.
    other_amount: direction follows the outstanding balance. If the
        person owed the user it is income, otherwise the user is paying
        them back and it is an expense.

    All three amounts zero produces no transactions.
    """
    if person_name == SELF_PERSON:
        raise ValueError(f"Cannot settle with {SELF_PERSON}")
    _check_amount("cash_amount", cash_amount)
    _check_amount("spent_for_me_amount", spent_for_me_amount)
    _check_amount("other_amount", other_amount)

    occurred_at = to_naive_utc(now) if now is not None else utc_now()

    def record(amount: int, type_: TransactionType, name: str, person: str) -> Transaction:
        return Transaction(
            id=id_factory(),
            occurred_at=occurred_at,
            amount=amount,
            type=type_,
            name=name,
            person=person,
            tag=SETTLEMENT_TAG,
        )

    produced: list[Transaction] = []

    if cash_amount > 0:
        produced.append(record(cash_amount, TransactionType.INCOME, description, person_name))

    if spent_for_me_amount > 0:
        produced.append(record(
            spent_for_me_amount,
            TransactionType.INCOME,
            f"Settlement (Spent for me): {description}",
            person_name,
        ))
        produced.append(record(
            spent_for_me_amount,
            TransactionType.EXPENSE,
            description,
            SELF_PERSON,
        ))

    if other_amount > 0:
        other_type = (
            TransactionType.INCOME if outstanding_balance > 0 else TransactionType.EXPENSE
        )
        produced.append(record(other_amount, other_type, description, person_name))

    return produced


def split_expense(
    name: str,
    amount: int,
    tag: str,
    persons: Sequence[str],
    occurred_at: Optional[datetime] = None,
    id_factory: IdFactory = new_id,
) -> list[Transaction]:
    """
    Split one shared expense evenly across `persons`.

    Each person gets an expense for `amount // len(persons)`; the
    remainder of the integer division is not assigned to anyone.
    Include SELF_PERSON in `persons` to record the user's own share.
    """
    _check_amount("amount", amount)
    unique_persons = list(dict.fromkeys(p.strip() for p in persons if p and p.strip()))
    if not unique_persons:
        raise ValueError("At least one person is required to split an expense")

    share = amount // len(unique_persons)
    moment = to_naive_utc(occurred_at) if occurred_at is not None else utc_now()

    return [
        Transaction(
            id=id_factory(),
            occurred_at=moment,
            amount=share,
            type=TransactionType.EXPENSE,
            name=name,
            tag=tag,
            person=person,
        )
        for person in unique_persons
    ]
