"""
Summary Engine

Point-in-time and time-series aggregates for the dashboard.

Definitions used throughout:
- balance     = income - expenses (every expense, Investment included)
- investments = Investment-tagged amounts
- settlement  = counterparty expenses - counterparty income
                (positive: others owe the user)
- net worth   = balance + investments + settlement
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, Optional, Sequence

from finance_tracker.engines.dates import (
    MONTH_ABBREVIATIONS,
    as_datetime,
    format_month,
    month_end,
    month_start,
    shift_month,
    start_of_day,
)
from finance_tracker.models.reports import (
    FinancialTotals,
    MonthlyComparison,
    PeriodTotals,
    SeriesPoint,
    Snapshot,
    TagTotal,
)
from finance_tracker.models.transaction import INVESTMENT_TAG, Transaction, utc_now


def _in_window(
    t: Transaction,
    start: Optional[datetime],
    end: Optional[datetime],
) -> bool:
    if start is not None and t.occurred_at < start:
        return False
    if end is not None and t.occurred_at > end:
        return False
    return True


def financial_totals(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> FinancialTotals:
    """
    Aggregate income, expenses, investments and settlement.

    `start`/`end` bound an inclusive window; a plain date for `end`
    is taken as midnight, so pass a datetime to include the whole day.
    Investments here count Investment-tagged transactions of either type.
    """
    start_dt = as_datetime(start) if start is not None else None
    end_dt = as_datetime(end) if end is not None else None

    totals = FinancialTotals()
    for t in transactions:
        if not _in_window(t, start_dt, end_dt):
            continue
        totals.transaction_count += 1
        if t.is_income:
            totals.income += t.amount
            if t.has_counterparty:
                totals.settlement_income += t.amount
        elif t.is_expense:
            totals.expenses += t.amount
            if t.has_counterparty:
                totals.settlement_expenses += t.amount
        if t.tag == INVESTMENT_TAG:
            totals.investments += t.amount
    return totals


class _RunningTotals:
    """Forward accumulator shared by the time series and the snapshot."""

    def __init__(self) -> None:
        self.balance = 0
        self.investments = 0
        self.settlement_income = 0
        self.settlement_expenses = 0

    def add(self, t: Transaction) -> None:
        if t.is_income:
            self.balance += t.amount
            if t.has_counterparty:
                self.settlement_income += t.amount
        elif t.is_expense:
            self.balance -= t.amount
            if t.tag == INVESTMENT_TAG:
                self.investments += t.amount
            if t.has_counterparty:
                self.settlement_expenses += t.amount

    @property
    def settlement(self) -> int:
        return self.settlement_expenses - self.settlement_income


class TimeSeries:
    """
    Daily running totals, lazily computed.

    Iterating recomputes the series from the captured inputs, so a
    TimeSeries can be iterated any number of times. Fewer than two
    points means there is not enough data to chart.
    """

    def __init__(
        self,
        transactions: Sequence[Transaction],
        window_days: Optional[int],
        now: datetime,
    ):
        self._transactions = tuple(transactions)
        self._window_days = window_days
        self._now = now

    @property
    def window_days(self) -> Optional[int]:
        return self._window_days

    def _cutoff(self) -> Optional[datetime]:
        if self._window_days is None:
            return None
        return self._now - timedelta(days=self._window_days)

    def _points(self) -> Iterator[SeriesPoint]:
        ordered = sorted(self._transactions, key=lambda t: t.occurred_at)
        running = _RunningTotals()
        cutoff = self._cutoff()

        current_day: Optional[date] = None
        for t in ordered:
            day = t.occurred_at.date()
            if current_day is not None and day != current_day:
                point = self._point(current_day, running)
                if cutoff is None or start_of_day(point.date) >= cutoff:
                    yield point
            current_day = day
            running.add(t)

        if current_day is not None:
            point = self._point(current_day, running)
            if cutoff is None or start_of_day(point.date) >= cutoff:
                yield point

    @staticmethod
    def _point(day: date, running: _RunningTotals) -> SeriesPoint:
        settlement = running.settlement
        return SeriesPoint(
            date=day,
            balance=running.balance,
            investments=running.investments,
            settlement=settlement,
            net_worth=running.balance + running.investments + settlement,
        )

    def __iter__(self) -> Iterator[SeriesPoint]:
        return self._points()

    def to_list(self) -> list[SeriesPoint]:
        return list(self)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    @property
    def is_sufficient(self) -> bool:
        """True when there are at least two points to draw a line through."""
        count = 0
        for _ in self:
            count += 1
            if count >= 2:
                return True
        return False


def time_series(
    transactions: Iterable[Transaction],
    window_days: Optional[int],
    now: Optional[datetime] = None,
) -> TimeSeries:
    """
    Running balance/investments/settlement/net worth, one point per day.

    window_days=None means all time. Points are kept when their date
    (at midnight) is on or after `now - window_days`.
    """
    if window_days is not None and window_days < 0:
        raise ValueError(f"window_days cannot be negative, got {window_days}")
    return TimeSeries(list(transactions), window_days, as_datetime(now) if now else utc_now())


def current_snapshot(
    transactions: Iterable[Transaction],
    settlement_override: Optional[int] = None,
) -> Snapshot:
    """
    Totals over the full list, using the time-series accumulation rules.

    Pass `settlement_override` to use a settlement figure computed
    elsewhere (e.g. the ledger's total) instead of recomputing it.
    """
    running = _RunningTotals()
    for t in transactions:
        running.add(t)

    settlement = running.settlement if settlement_override is None else settlement_override
    return Snapshot(
        balance=running.balance,
        investments=running.investments,
        settlement=settlement,
        net_worth=running.balance + running.investments + settlement,
    )


def period_totals(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
) -> PeriodTotals:
    """Income, expenses and count within an inclusive window."""
    start, end = as_datetime(start), as_datetime(end)
    result = PeriodTotals(start=start, end=end)
    for t in transactions:
        if not _in_window(t, start, end):
            continue
        result.count += 1
        if t.is_income:
            result.income += t.amount
        elif t.is_expense:
            result.expenses += t.amount
    return result


def monthly_comparison(
    transactions: Iterable[Transaction],
    month_count: int,
    reference_date: Optional[date] = None,
) -> list[MonthlyComparison]:
    """
    Income vs expenses for the last `month_count` calendar months,
    oldest first, ending with the (possibly partial) reference month.
    """
    if month_count < 0:
        raise ValueError(f"month_count cannot be negative, got {month_count}")

    reference = as_datetime(reference_date) if reference_date else utc_now()
    transactions = list(transactions)

    rows = []
    for offset in range(month_count - 1, -1, -1):
        year, month = shift_month(reference.year, reference.month, -offset)
        totals = period_totals(transactions, month_start(year, month), month_end(year, month))
        rows.append(MonthlyComparison(
            period=format_month(year, month),
            label=MONTH_ABBREVIATIONS[month - 1],
            income=totals.income,
            expenses=totals.expenses,
            balance=totals.balance,
        ))
    return rows


def category_breakdown(transactions: Iterable[Transaction]) -> list[TagTotal]:
    """Expense totals by tag, largest first (ties by tag name)."""
    totals: dict[str, int] = defaultdict(int)
    for t in transactions:
        if t.is_expense:
            totals[t.tag] += t.amount

    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [TagTotal(tag=tag, total=total) for tag, total in ordered]
